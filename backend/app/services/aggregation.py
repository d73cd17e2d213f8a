# backend/app/services/aggregation.py
"""
Group -> aggregate -> sort -> truncate pipeline behind the chart series.

``aggregate`` is a pure function of (rows, config). ``run_aggregation`` wraps
it for the worker process: it takes the raw request message and always
returns exactly one response message, never an exception.
"""
from __future__ import annotations

import math
import unicodedata
from typing import Any, Dict, List, Mapping, Sequence

import pandas as pd
from loguru import logger

from ..schemas.analytics import AggregatedPoint, ChartConfiguration, ChartFilter
from .values import UNKNOWN_LABEL, cell, number_or_zero, to_label, to_number


MAX_POINTS = 1000


def group_label(value: Any) -> str:
    return UNKNOWN_LABEL if value is None else to_label(value)


def collation_key(name: str):
    """Accent- and case-insensitive ordering; lowercase sorts first on ties."""
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), name.swapcase())


def matches_filter(row: Mapping[str, Any], flt: ChartFilter) -> bool:
    raw = cell(row, flt.column)
    if flt.kind == "range":
        number = to_number(raw)
        if not math.isfinite(number):
            return False
        if flt.low is not None and number < flt.low:
            return False
        if flt.high is not None and number > flt.high:
            return False
        return True
    return group_label(raw) == group_label(flt.value)


def apply_filters(rows: Sequence[Mapping[str, Any]], filters: Sequence[ChartFilter]) -> List[Mapping[str, Any]]:
    if not filters:
        return list(rows)
    return [r for r in rows if all(matches_filter(r, f) for f in filters)]


def group_stats(rows: Sequence[Mapping[str, Any]], key_column: str, value_column: str) -> pd.DataFrame:
    """
    One row per group label, in first-encounter order, with total, members,
    first, low and high of the zero-coerced values.
    """
    frame = pd.DataFrame({
        "name": pd.Series([group_label(cell(r, key_column)) for r in rows], dtype=object),
        "value": pd.Series([number_or_zero(cell(r, value_column)) for r in rows], dtype=float),
    })
    return frame.groupby("name", sort=False)["value"].agg(
        total="sum", members="size", first="first", low="min", high="max"
    )


def _mode_value(stats, mode: str) -> float:
    if mode == "average":
        value = stats.total / stats.members
    elif mode == "count":
        value = float(stats.members)
    elif mode == "none":
        value = stats.first
    elif mode == "min":
        value = stats.low
    elif mode == "max":
        value = stats.high
    else:
        value = stats.total
    value = float(value)
    # infinite or NaN results are reported as 0
    return value if math.isfinite(value) else 0.0


def aggregate(
    rows: Sequence[Mapping[str, Any]],
    config: ChartConfiguration,
    limit: int = MAX_POINTS,
) -> List[AggregatedPoint]:
    grouped = group_stats(apply_filters(rows, config.filters), config.group_key_column, config.value_column)
    points = [
        AggregatedPoint(
            name=str(stats.Index),
            value=_mode_value(stats, config.aggregation_mode),
            size=int(stats.members),
        )
        for stats in grouped.itertuples()
    ]

    # sorted() is stable in both directions, so ties keep encounter order
    reverse = config.sort_direction == "desc"
    if config.sort_key == "by_value":
        points = sorted(points, key=lambda p: p.value, reverse=reverse)
    else:
        points = sorted(points, key=lambda p: collation_key(p.name), reverse=reverse)

    return points[:max(0, limit)]


def run_aggregation(message: Any, limit: int = MAX_POINTS) -> Dict[str, Any]:
    """
    Worker-side handler: request ``{seq, data, config}`` in, exactly one
    ``{seq, status, data | error}`` out.
    """
    seq = message.get("seq", 0) if isinstance(message, Mapping) else 0
    try:
        if not isinstance(message, Mapping) or not isinstance(message.get("data"), list):
            return {"seq": seq, "status": "error", "error": "No data array provided"}

        config = ChartConfiguration.model_validate(message.get("config") or {})
        points = aggregate(message["data"], config, limit=message.get("limit", limit))
        return {
            "seq": seq,
            "status": "success",
            "data": [p.model_dump() for p in points],
        }
    except Exception as e:
        logger.error(f"Aggregation request {seq} failed: {e}")
        return {"seq": seq, "status": "error", "error": str(e)}
