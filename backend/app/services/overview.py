# backend/app/services/overview.py
"""
Dataset overview: everything the overview screen shows, computed in one pass
of the synchronous builders. Aggregated chart series are not part of it; those
go through the aggregation worker.
"""
from __future__ import annotations

from typing import Optional

from loguru import logger

from ..core.config import Settings, settings as default_settings
from ..schemas.analytics import (
    CategoryResponse,
    CorrelationResponse,
    HistogramResponse,
    OverviewResponse,
    SummaryResponse,
)
from ..schemas.dataset import Dataset
from .correlation import build_correlation
from .distribution import build_category_counts, build_histogram, numeric_values
from .inference import (
    classify_columns,
    describe_columns,
    missing_by_column,
    pick_quick_columns,
    resolve_columns,
    type_breakdown,
)
from .summary import compute_quality_score, compute_summary, quality_breakdown
from .values import cell


NO_NUMERIC_MESSAGE = "No numeric column detected"
NO_CATEGORICAL_MESSAGE = "No categorical column detected"
NO_CORRELATION_MESSAGE = "Not enough numeric columns to compute correlation"


def build_summary(dataset: Dataset) -> SummaryResponse:
    columns = resolve_columns(dataset)
    summary = compute_summary(dataset.data, columns)
    return SummaryResponse(
        summary=summary,
        quality_score=compute_quality_score(summary, len(columns)),
        quality=quality_breakdown(summary, len(columns)),
    )


def build_histogram_response(
    dataset: Dataset,
    column: Optional[str] = None,
    bins: Optional[int] = None,
    cfg: Settings = default_settings,
) -> HistogramResponse:
    columns = resolve_columns(dataset)
    if column is None:
        column = pick_quick_columns(
            columns, dataset.data, cfg.numeric_sample_rows, cfg.categorical_sample_rows
        ).numeric
        if column is None:
            return HistogramResponse(message=NO_NUMERIC_MESSAGE)
    elif column not in {c.name for c in columns}:
        raise ValueError(f"Unknown column '{column}'")

    data = build_histogram(numeric_values(dataset.data, column), bins or cfg.histogram_bins)
    return HistogramResponse(column=column, bins=data)


def build_category_response(
    dataset: Dataset,
    column: Optional[str] = None,
    top_n: Optional[int] = None,
    cfg: Settings = default_settings,
) -> CategoryResponse:
    columns = resolve_columns(dataset)
    if column is None:
        column = pick_quick_columns(
            columns, dataset.data, cfg.numeric_sample_rows, cfg.categorical_sample_rows
        ).categorical
        if column is None:
            return CategoryResponse(message=NO_CATEGORICAL_MESSAGE)
    elif column not in {c.name for c in columns}:
        raise ValueError(f"Unknown column '{column}'")

    data = build_category_counts((cell(r, column) for r in dataset.data), top_n or cfg.category_top_n)
    return CategoryResponse(column=column, categories=data)


def build_correlation_response(dataset: Dataset, cfg: Settings = default_settings) -> CorrelationResponse:
    matrix = build_correlation(dataset.data, resolve_columns(dataset), cfg.correlation_sample_rows)
    if matrix is None:
        return CorrelationResponse(message=NO_CORRELATION_MESSAGE)
    return CorrelationResponse(correlation=matrix)


def build_overview(dataset: Dataset, cfg: Settings = default_settings) -> OverviewResponse:
    rows = dataset.data
    columns = resolve_columns(dataset)
    described = describe_columns(rows, columns)

    summary = compute_summary(rows, columns)
    quick = pick_quick_columns(columns, rows, cfg.numeric_sample_rows, cfg.categorical_sample_rows)

    if quick.numeric is not None:
        histogram = HistogramResponse(
            column=quick.numeric,
            bins=build_histogram(numeric_values(rows, quick.numeric), cfg.histogram_bins),
        )
    else:
        histogram = HistogramResponse(message=NO_NUMERIC_MESSAGE)

    if quick.categorical is not None:
        categories = CategoryResponse(
            column=quick.categorical,
            categories=build_category_counts((cell(r, quick.categorical) for r in rows), cfg.category_top_n),
        )
    else:
        categories = CategoryResponse(message=NO_CATEGORICAL_MESSAGE)

    matrix = build_correlation(rows, columns, cfg.correlation_sample_rows)
    correlation = (
        CorrelationResponse(correlation=matrix)
        if matrix is not None
        else CorrelationResponse(message=NO_CORRELATION_MESSAGE)
    )

    logger.info(
        f"Overview built: rows={summary.total_rows} cols={summary.total_columns} "
        f"numeric={quick.numeric} categorical={quick.categorical}"
    )
    return OverviewResponse(
        summary=summary,
        quality_score=compute_quality_score(summary, len(columns)),
        quality=quality_breakdown(summary, len(columns)),
        columns=described,
        column_kinds=classify_columns(columns, rows, cfg.numeric_sample_rows),
        quick_columns=quick,
        histogram=histogram,
        categories=categories,
        correlation=correlation,
        type_breakdown=type_breakdown(described),
        missing_by_column=missing_by_column(described),
    )
