# backend/app/routers/analytics.py
from __future__ import annotations

from concurrent.futures import TimeoutError as FuturesTimeoutError

from fastapi import APIRouter, HTTPException, Request
from loguru import logger
from pydantic import BaseModel

from ..core.config import settings
from ..schemas.analytics import (
    AggregateRequest,
    CategoryResponse,
    ChartConfiguration,
    CorrelationResponse,
    HistogramResponse,
    OverviewResponse,
    SummaryResponse,
    WorkerResponse,
)
from ..schemas.dataset import CategoryRequest, Dataset, HistogramRequest
from ..services.chart_state import ChartCommand, reduce_config
from ..services.dispatcher import DispatcherClosedError
from ..services.overview import (
    build_category_response,
    build_correlation_response,
    build_histogram_response,
    build_overview,
    build_summary,
)

router = APIRouter(tags=["analytics"])


class ReduceConfigRequest(BaseModel):
    config: ChartConfiguration
    command: ChartCommand


@router.post("/overview", response_model=OverviewResponse)
def get_overview(dataset: Dataset) -> OverviewResponse:
    """Summary, quality, column kinds, quick charts and correlation in one call."""
    return build_overview(dataset, settings)


@router.post("/summary", response_model=SummaryResponse)
def get_summary(dataset: Dataset) -> SummaryResponse:
    return build_summary(dataset)


@router.post("/histogram", response_model=HistogramResponse)
def get_histogram(req: HistogramRequest) -> HistogramResponse:
    try:
        return build_histogram_response(req.dataset, req.column, req.bins, settings)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/categories", response_model=CategoryResponse)
def get_categories(req: CategoryRequest) -> CategoryResponse:
    try:
        return build_category_response(req.dataset, req.column, req.top_n, settings)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/correlation", response_model=CorrelationResponse)
def get_correlation(dataset: Dataset) -> CorrelationResponse:
    return build_correlation_response(dataset, settings)


@router.post("/aggregate", response_model=WorkerResponse)
def aggregate_series(req: AggregateRequest, request: Request) -> WorkerResponse:
    """
    Grouped/aggregated/sorted chart series, computed by the aggregation worker.
    Worker-side failures come back as ``status="error"``, not as HTTP errors.
    """
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None or not dispatcher.running:
        raise HTTPException(status_code=503, detail="Aggregation worker is not running")

    try:
        return dispatcher.request(req.data, req.config, timeout=settings.worker_timeout_s)
    except DispatcherClosedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except FuturesTimeoutError:
        logger.warning(f"Aggregation timed out after {settings.worker_timeout_s}s")
        raise HTTPException(status_code=504, detail="Aggregation timed out")


@router.post("/config/reduce", response_model=ChartConfiguration)
def reduce_chart_config(req: ReduceConfigRequest) -> ChartConfiguration:
    try:
        return reduce_config(req.config, req.command)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
