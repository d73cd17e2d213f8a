# backend/app/services/distribution.py
"""Histogram and category-frequency builders for the quick charts."""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Sequence

import numpy as np
import pandas as pd

from ..schemas.analytics import CategoryCount, HistogramBin
from .values import BLANK_LABEL, cell, is_blank, to_label, to_number


DEFAULT_BINS = 12
DEFAULT_TOP_N = 15


def numeric_values(rows: Sequence[Mapping[str, Any]], column: str) -> List[float]:
    values = np.fromiter((to_number(cell(r, column)) for r in rows), dtype=float, count=len(rows))
    return values[np.isfinite(values)].tolist()


def build_histogram(values: Iterable[float], bins: int = DEFAULT_BINS) -> List[HistogramBin]:
    """
    Equal-width bins over [min, max]; the last bin is closed so the maximum
    lands in it. NaN and infinite values are ignored.
    """
    if bins < 1:
        raise ValueError("bins must be >= 1")
    arr = np.asarray(list(values), dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return []

    lo = float(arr.min())
    hi = float(arr.max())
    width = ((hi - lo) or 1.0) / bins
    if width <= 0:
        # range underflows when split; keep the bins usable
        width = 1.0 / bins

    idx = np.floor((arr - lo) / width).astype(np.int64)
    idx = np.clip(idx, 0, bins - 1)
    if hi > lo:
        idx[arr == hi] = bins - 1
    counts = np.bincount(idx, minlength=bins)

    return [
        HistogramBin(
            bin=f"{lo + i * width:.1f}–{lo + (i + 1) * width:.1f}",
            count=int(counts[i]),
        )
        for i in range(bins)
    ]


def build_category_counts(values: Iterable[Any], top_n: int = DEFAULT_TOP_N) -> List[CategoryCount]:
    labels = pd.Series([BLANK_LABEL if is_blank(v) else to_label(v) for v in values], dtype=object)
    if labels.empty:
        return []

    # stable sort: equal counts keep first-seen order
    counts = labels.value_counts(sort=False).sort_values(ascending=False, kind="stable")
    return [CategoryCount(name=str(name), value=int(ct)) for name, ct in counts.head(max(0, top_n)).items()]
