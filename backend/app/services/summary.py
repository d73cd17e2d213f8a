# backend/app/services/summary.py
"""
Dataset summary and data-quality scoring.

- Summary: row/column counts, missing cells, duplicate rows, memory footprint.
- Quality: a 0..100 score from a fixed penalty model, plus the per-issue
  breakdown shown next to it.
"""
from __future__ import annotations

import json
import math
from typing import Any, List, Mapping, Optional, Sequence, Set

from loguru import logger

from ..schemas.analytics import QualityBreakdown, QualityIssue, Summary
from ..schemas.dataset import ColumnDescriptor
from .values import canonical, cell, is_missing


MISSING_WEIGHT = 0.9
DUPLICATE_WEIGHT = 0.5
NO_ISSUES_MESSAGE = "No quality issues detected"


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def estimate_memory(rows: Sequence[Any]) -> str:
    """Byte length of the compact JSON encoding of the rows."""
    encoded = json.dumps(list(rows), separators=(",", ":"), ensure_ascii=False, default=str)
    return format_bytes(len(encoded.encode("utf-8")))


def row_key(row: Mapping[str, Any], column_names: Sequence[str]) -> str:
    """Canonical serialization in declared column order; row key order never matters."""
    return json.dumps([canonical(cell(row, name)) for name in column_names], ensure_ascii=False)


def compute_summary(rows: Sequence[Mapping[str, Any]], columns: Sequence[ColumnDescriptor]) -> Summary:
    total_columns = len(columns)
    if not rows:
        return Summary(total_rows=0, total_columns=total_columns)

    names = [c.name for c in columns]
    missing_values = 0
    non_null_rows = 0
    seen: Set[str] = set()

    for row in rows:
        row_missing = 0
        for name in names:
            if is_missing(cell(row, name)):
                row_missing += 1
        missing_values += row_missing

        # all-null rows never count as duplicates of each other
        if row_missing == len(names):
            continue
        non_null_rows += 1
        seen.add(row_key(row, names))

    summary = Summary(
        total_rows=len(rows),
        total_columns=total_columns,
        missing_values=missing_values,
        duplicates=non_null_rows - len(seen),
        memory_usage=estimate_memory(rows),
    )
    logger.debug(
        "summary rows={} cols={} missing={} duplicates={}",
        summary.total_rows, summary.total_columns, summary.missing_values, summary.duplicates,
    )
    return summary


# ---------------------------------------------------------
# Quality
# ---------------------------------------------------------
def _clamp01(x: float) -> float:
    return min(1.0, max(0.0, x))


def _penalties(summary: Summary, total_columns: int):
    total_rows = summary.total_rows
    total_cells = total_rows * total_columns
    missing = _clamp01(summary.missing_values / total_cells) * MISSING_WEIGHT if total_cells > 0 else 0.0
    duplicate = _clamp01(summary.duplicates / total_rows) * DUPLICATE_WEIGHT if total_rows > 0 else 0.0
    return missing, duplicate


def compute_quality_score(summary: Optional[Summary], total_columns: Optional[int] = None) -> int:
    """
    Integer score in [0, 100]. Never raises: absent input, empty shapes and
    computation faults all resolve to 0.
    """
    try:
        if summary is None:
            return 0
        columns = summary.total_columns if total_columns is None else total_columns
        if columns <= 0 or summary.total_rows <= 0:
            return 0

        missing_penalty, duplicate_penalty = _penalties(summary, columns)
        score = 100.0 * (1.0 - (missing_penalty + duplicate_penalty))
        if not math.isfinite(score):
            return 0
        return int(max(0.0, min(100.0, math.floor(score + 0.5))))
    except Exception as e:
        logger.error(f"Error calculating quality score: {e}")
        return 0


def quality_breakdown(summary: Optional[Summary], total_columns: Optional[int] = None) -> QualityBreakdown:
    """Percentage of quality lost to each issue kind."""
    if summary is None:
        return QualityBreakdown()
    columns = summary.total_columns if total_columns is None else total_columns
    total_rows = summary.total_rows
    total_cells = total_rows * columns

    missing_pct = (summary.missing_values / total_cells) * MISSING_WEIGHT * 100 if total_cells > 0 else 0.0
    duplicate_pct = (summary.duplicates / total_rows) * DUPLICATE_WEIGHT * 100 if total_rows > 0 else 0.0
    total_loss = missing_pct + duplicate_pct

    issues: List[QualityIssue] = []
    if summary.missing_values > 0:
        issues.append(QualityIssue(
            kind="missing",
            count=summary.missing_values,
            penalty_pct=round(missing_pct, 1),
            message=f"{summary.missing_values} missing values",
        ))
    if summary.duplicates > 0:
        issues.append(QualityIssue(
            kind="duplicates",
            count=summary.duplicates,
            penalty_pct=round(duplicate_pct, 1),
            message=f"{summary.duplicates} duplicate rows",
        ))

    return QualityBreakdown(
        missing_penalty_pct=round(missing_pct, 1),
        duplicate_penalty_pct=round(duplicate_pct, 1),
        total_loss_pct=round(total_loss, 1),
        issues=issues,
        message=NO_ISSUES_MESSAGE if total_loss == 0 else None,
    )
