# backend/app/services/correlation.py
from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
from loguru import logger

from ..schemas.analytics import CorrelationMatrix
from ..schemas.dataset import ColumnDescriptor
from .inference import CATEGORICAL_SAMPLE_ROWS, eligible_numeric_columns
from .values import cell, to_number


def column_series(rows: Sequence[Mapping[str, Any]], name: str) -> np.ndarray:
    """Finite numeric readings of a column, in row order, non-numeric dropped."""
    values = np.fromiter((to_number(cell(r, name)) for r in rows), dtype=float, count=len(rows))
    return values[np.isfinite(values)]


def pearson(xs: np.ndarray, ys: np.ndarray) -> float:
    """
    Pearson coefficient over the common prefix of two series. A zero
    denominator is floored to 1, so constant series correlate at 0.
    """
    n = min(len(xs), len(ys))
    if n == 0:
        return 0.0
    vx = _centered(xs[:n])
    vy = _centered(ys[:n])
    num = float(np.dot(vx, vy))
    denom = math.sqrt(float(np.dot(vx, vx)) * float(np.dot(vy, vy))) or 1.0
    r = num / denom
    if not math.isfinite(r):
        return 0.0
    return max(-1.0, min(1.0, r))


def _centered(values: np.ndarray) -> np.ndarray:
    """Deviations from the mean, scaled to unit max magnitude so the dot products stay finite."""
    scale = float(np.abs(values).max())
    if scale == 0.0:
        return values
    scaled = values / scale
    dev = scaled - scaled.mean()
    peak = float(np.abs(dev).max())
    return dev / peak if peak > 0.0 else dev


def build_correlation(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[ColumnDescriptor],
    sample_rows: int = CATEGORICAL_SAMPLE_ROWS,
) -> Optional[CorrelationMatrix]:
    """Correlation matrix over every sampled-numeric column, or None when fewer than two."""
    names = eligible_numeric_columns(columns, rows, sample_rows)
    if len(names) < 2:
        return None

    series: Dict[str, np.ndarray] = {name: column_series(rows, name) for name in names}
    size = len(names)
    matrix: List[List[float]] = [[0.0] * size for _ in range(size)]

    for i in range(size):
        for j in range(i, size):
            r = pearson(series[names[i]], series[names[j]])
            matrix[i][j] = r
            matrix[j][i] = r

    logger.debug(f"Correlation matrix built for {size} numeric columns")
    return CorrelationMatrix(columns=names, matrix=matrix)
