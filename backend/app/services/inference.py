# backend/app/services/inference.py
"""
Column type & shape inference.

Classification only looks at a bounded prefix of the rows so it stays cheap on
large datasets. Column order is the tie-break whenever a single "quick" column
has to be picked.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from ..schemas.analytics import QuickColumns, TypeShare
from ..schemas.dataset import ColumnDescriptor, Dataset
from .values import cell, classify, is_missing, is_numeric_like, to_label, ValueKind


NUMERIC_SAMPLE_ROWS = 20
CATEGORICAL_SAMPLE_ROWS = 50
MIN_NUMERIC_HITS = 5
NUMERIC_HIT_RATIO = 0.6
MIN_CATEGORIES = 2
MAX_CATEGORIES = 20

NUMERIC = "numeric"
CATEGORICAL = "categorical"


def declared_numeric(column: ColumnDescriptor) -> bool:
    declared = (column.type or "").lower()
    return "num" in declared or "int" in declared


def _sample(rows: Sequence[Mapping[str, Any]], name: str, limit: int) -> List[Any]:
    return [cell(r, name) for r in rows[:limit]]


def sampled_numeric(rows: Sequence[Mapping[str, Any]], name: str, sample_rows: int = NUMERIC_SAMPLE_ROWS) -> bool:
    """True when enough of the sampled values parse as finite numbers."""
    sample = _sample(rows, name, sample_rows)
    hits = sum(1 for v in sample if is_numeric_like(v))
    return hits >= max(MIN_NUMERIC_HITS, math.floor(len(sample) * NUMERIC_HIT_RATIO))


def is_numeric_column(
    column: ColumnDescriptor,
    rows: Sequence[Mapping[str, Any]],
    sample_rows: int = NUMERIC_SAMPLE_ROWS,
) -> bool:
    return declared_numeric(column) or sampled_numeric(rows, column.name, sample_rows)


def is_categorical_column(
    name: str,
    rows: Sequence[Mapping[str, Any]],
    sample_rows: int = CATEGORICAL_SAMPLE_ROWS,
) -> bool:
    distinct = {
        to_label(v)
        for v in _sample(rows, name, sample_rows)
        if not (v is None or (isinstance(v, str) and v == ""))
    }
    return MIN_CATEGORIES <= len(distinct) <= MAX_CATEGORIES


def pick_quick_columns(
    columns: Sequence[ColumnDescriptor],
    rows: Sequence[Mapping[str, Any]],
    numeric_sample_rows: int = NUMERIC_SAMPLE_ROWS,
    categorical_sample_rows: int = CATEGORICAL_SAMPLE_ROWS,
) -> QuickColumns:
    """First numeric and first categorical column, scanning in column order."""
    numeric_col: Optional[str] = None
    categorical_col: Optional[str] = None

    for col in columns:
        if numeric_col is None and is_numeric_column(col, rows, numeric_sample_rows):
            numeric_col = col.name
        if categorical_col is None and is_categorical_column(col.name, rows, categorical_sample_rows):
            categorical_col = col.name
        if numeric_col is not None and categorical_col is not None:
            break

    return QuickColumns(numeric=numeric_col, categorical=categorical_col)


def classify_columns(
    columns: Sequence[ColumnDescriptor],
    rows: Sequence[Mapping[str, Any]],
    sample_rows: int = NUMERIC_SAMPLE_ROWS,
) -> Dict[str, str]:
    return {
        col.name: NUMERIC if is_numeric_column(col, rows, sample_rows) else CATEGORICAL
        for col in columns
    }


def eligible_numeric_columns(
    columns: Sequence[ColumnDescriptor],
    rows: Sequence[Mapping[str, Any]],
    sample_rows: int = CATEGORICAL_SAMPLE_ROWS,
) -> List[str]:
    """Numeric by sampling alone; the declared type is ignored."""
    return [c.name for c in columns if sampled_numeric(rows, c.name, sample_rows)]


# ---------------------------------------------------------
# Column descriptors
# ---------------------------------------------------------
def _value_kind(value: Any) -> str:
    kind = classify(value)
    if kind is ValueKind.STRING and is_numeric_like(value):
        kind = ValueKind.NUMBER
    return kind.value


def _dominant_kind(present: pd.Series) -> str:
    if present.empty:
        return "unknown"
    # idxmax keeps the first-seen kind on ties
    return str(present.map(_value_kind).value_counts(sort=False).idxmax())


def describe_columns(
    rows: Sequence[Mapping[str, Any]],
    columns: Optional[Sequence[ColumnDescriptor]] = None,
) -> List[ColumnDescriptor]:
    """
    Fill in type, missing and unique counts for every column. Without
    descriptors, columns are taken from row keys in first-seen order.
    """
    if columns:
        names = [c.name for c in columns]
        declared = {c.name: c.type for c in columns}
    else:
        names = []
        seen = set()
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            for key in row:
                if key not in seen:
                    seen.add(key)
                    names.append(str(key))
        declared = {}

    described: List[ColumnDescriptor] = []
    for name in names:
        series = pd.Series([cell(r, name) for r in rows], dtype=object)
        missing = series.map(is_missing).astype(bool)
        present = series[~missing]
        described.append(ColumnDescriptor(
            name=name,
            type=declared.get(name) or _dominant_kind(present),
            missing_count=int(missing.sum()),
            unique_count=int(present.map(to_label).nunique()),
        ))
    return described


def resolve_columns(dataset: Dataset) -> List[ColumnDescriptor]:
    """Declared columns when present, otherwise derived from the rows."""
    if dataset.columns:
        return list(dataset.columns)
    return describe_columns(dataset.data)


def type_breakdown(columns: Sequence[ColumnDescriptor]) -> List[TypeShare]:
    counts = pd.Series([col.type or "Unknown" for col in columns], dtype=object).value_counts(sort=False)
    total = int(counts.sum()) or 1
    return [
        TypeShare(name=str(name), value=int(value), pct=round(int(value) / total * 100.0, 1))
        for name, value in counts.items()
    ]


def missing_by_column(columns: Sequence[ColumnDescriptor]) -> List[ColumnDescriptor]:
    flagged = [c for c in columns if (c.missing_count or 0) > 0]
    return sorted(flagged, key=lambda c: c.missing_count, reverse=True)
