"""
Chart API Routes

Charts built from an explicit dimension/metric/aggregation choice,
without going through query interpretation.
"""

from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_fetcher
from api.schemas.requests import ChartRequest
from api.schemas.responses import ChartResponse
from config import get_settings
from engine.aggregator import aggregate_breakdown, aggregate_groups
from engine.chart_builder import BREAKDOWN_CHART_TYPES, build_chart
from engine.models import Aggregation, ChartRecommendation
from engine.narrator import capitalize, describe
from engine.sorter import is_time_dimension, sort_rows
from store.fetcher import DatasetFetcher


router = APIRouter()


@router.post("/charts/{data_source_id}", response_model=ChartResponse)
async def build_dataset_chart(
    data_source_id: str,
    request: ChartRequest,
    fetcher: DatasetFetcher = Depends(get_fetcher),
) -> ChartResponse:
    """Aggregate a data source and build the chart payload for it."""
    result = await fetcher.fetch(data_source_id)
    if result.is_empty:
        raise HTTPException(status_code=404, detail="Data source not found or empty")

    dataset = result.dataset
    for column in (request.dimension, request.metric, *request.breakdown_dimensions):
        if column and column not in dataset.column_names:
            raise HTTPException(status_code=400, detail=f"Unknown column: {column}")
    if request.metric is None and request.aggregation != Aggregation.COUNT:
        raise HTTPException(status_code=400, detail="A metric is required unless counting")

    value_field = request.metric or "count"
    hints = request.to_hints()
    hints = replace(
        hints,
        breakdown_dimensions=tuple(d for d in hints.breakdown_dimensions if d != request.dimension),
    )

    if hints.breakdown_dimensions and request.chart_type in BREAKDOWN_CHART_TYPES:
        records = aggregate_breakdown(
            dataset,
            request.dimension,
            hints.breakdown_dimensions,
            request.metric,
            request.aggregation,
            value_field,
        )
    else:
        rows = sort_rows(
            aggregate_groups(dataset, request.dimension, request.metric, request.aggregation),
            is_time_dimension(request.dimension, request.chart_type),
        )
        records = [row.to_record(request.dimension, value_field) for row in rows]

    settings = get_settings().engine
    recommendation = ChartRecommendation(
        chart_type=request.chart_type,
        dimension_column=request.dimension,
        metric_column=value_field,
        title=request.title or (
            f"{describe(request.aggregation, value_field)} by {capitalize(request.dimension)}"
        ),
    )
    chart = build_chart(
        recommendation,
        records,
        hints,
        top_n=settings.top_n_categories,
        others_label=settings.others_label,
    )
    return ChartResponse(data_source_id=data_source_id, chart=chart)
