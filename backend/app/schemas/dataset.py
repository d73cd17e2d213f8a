# backend/app/schemas/dataset.py
from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ColumnDescriptor(BaseModel):
    name: str
    type: str = ""
    missing_count: int = 0
    unique_count: int = 0


class Dataset(BaseModel):
    data: List[Dict[str, Any]] = Field(default_factory=list)
    columns: List[ColumnDescriptor] = Field(default_factory=list)


class HistogramRequest(BaseModel):
    dataset: Dataset
    column: Optional[str] = None
    bins: Optional[int] = Field(default=None, ge=1, le=500)


class CategoryRequest(BaseModel):
    dataset: Dataset
    column: Optional[str] = None
    top_n: Optional[int] = Field(default=None, ge=1, le=1000)
