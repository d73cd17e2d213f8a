# backend/app/schemas/analytics.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple
from pydantic import BaseModel, Field

from .base import APIResponse, ValueObject
from .dataset import ColumnDescriptor


AggregationMode = Literal["sum", "average", "count", "none", "min", "max"]
SortKey = Literal["by_name", "by_value"]
SortDirection = Literal["asc", "desc"]
FilterKind = Literal["categorical", "range"]


# ============================================================
# SUMMARY / QUALITY
# ============================================================
class Summary(ValueObject):
    total_rows: int = 0
    total_columns: int = 0
    missing_values: int = 0
    duplicates: int = 0
    memory_usage: str = "0 B"


class QualityIssue(ValueObject):
    kind: Literal["missing", "duplicates"]
    count: int
    penalty_pct: float
    message: str


class QualityBreakdown(ValueObject):
    missing_penalty_pct: float = 0.0
    duplicate_penalty_pct: float = 0.0
    total_loss_pct: float = 0.0
    issues: List[QualityIssue] = Field(default_factory=list)
    message: Optional[str] = None


# ============================================================
# CHART CONFIGURATION
# ============================================================
class ChartFilter(ValueObject):
    column: str
    kind: FilterKind = "categorical"
    value: Any = None
    low: Optional[float] = None
    high: Optional[float] = None


class ChartConfiguration(ValueObject):
    group_key_column: str
    value_column: str
    aggregation_mode: AggregationMode = "sum"
    sort_key: SortKey = "by_value"
    sort_direction: SortDirection = "desc"
    filters: Tuple[ChartFilter, ...] = ()


class AggregatedPoint(ValueObject):
    name: str
    value: float
    size: int


# ============================================================
# CORRELATION / DISTRIBUTIONS
# ============================================================
class CorrelationMatrix(ValueObject):
    columns: List[str]
    matrix: List[List[float]]


class HistogramBin(ValueObject):
    bin: str
    count: int


class CategoryCount(ValueObject):
    name: str
    value: int


class QuickColumns(ValueObject):
    numeric: Optional[str] = None
    categorical: Optional[str] = None


class TypeShare(ValueObject):
    name: str
    value: int
    pct: float


# ============================================================
# WORKER MESSAGES
# ============================================================
class WorkerResponse(ValueObject):
    seq: int = 0
    status: Literal["success", "error"]
    data: Optional[List[AggregatedPoint]] = None
    error: Optional[str] = None


# ============================================================
# HTTP ENVELOPES
# ============================================================
class AggregateRequest(BaseModel):
    data: List[Dict[str, Any]]
    config: ChartConfiguration


class SummaryResponse(APIResponse):
    summary: Summary
    quality_score: int
    quality: QualityBreakdown


class HistogramResponse(APIResponse):
    column: Optional[str] = None
    bins: List[HistogramBin] = Field(default_factory=list)


class CategoryResponse(APIResponse):
    column: Optional[str] = None
    categories: List[CategoryCount] = Field(default_factory=list)


class CorrelationResponse(APIResponse):
    correlation: Optional[CorrelationMatrix] = None


class OverviewResponse(APIResponse):
    summary: Summary
    quality_score: int
    quality: QualityBreakdown
    columns: List[ColumnDescriptor]
    column_kinds: Dict[str, str]
    quick_columns: QuickColumns
    histogram: HistogramResponse
    categories: CategoryResponse
    correlation: CorrelationResponse
    type_breakdown: List[TypeShare]
    missing_by_column: List[ColumnDescriptor]
