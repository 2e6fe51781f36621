"""
API Response Schemas

Pydantic models for API responses.
"""

from datetime import datetime
from typing import Any, Optional

import numpy as np
from pydantic import BaseModel, Field, field_serializer

from api.schemas.requests import ContextModel
from engine.models import AnalyticalResponse, ChartType


def convert_numpy(obj: Any) -> Any:
    """Convert numpy types to Python native types."""
    if obj is None:
        return None
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, dict):
        return {k: convert_numpy(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [convert_numpy(v) for v in obj]
    return obj


class ColumnInfo(BaseModel):
    """A dataset column and its inferred type."""

    name: str
    type: str = Field(..., pattern="^(numeric|string|date)$")


class DatasetResponse(BaseModel):
    """A registered data source."""

    data_source_id: str
    name: str
    file_id: str
    file_name: str
    row_count: int
    columns: list[ColumnInfo] = []
    created_at: datetime
    message: str = ""


class DatasetListResponse(BaseModel):
    """All registered data sources."""

    datasets: list[DatasetResponse]
    count: int


class AnalyzeResponse(BaseModel):
    """
    Answer to an analytical query.

    handled=False means the question was not analytical or could not be
    answered from the data; the caller should use another answering path.
    """

    handled: bool
    answer: Optional[str] = None
    chart: Optional[dict[str, Any]] = None
    chart_title: Optional[str] = None
    chart_type: Optional[ChartType] = None
    context: Optional[ContextModel] = None
    data: list[dict[str, Any]] = []
    data_source_id: Optional[str] = None
    file_id: Optional[str] = None

    @field_serializer("chart", "data")
    @classmethod
    def serialize_numpy_fields(cls, v: Any) -> Any:
        return convert_numpy(v)

    @classmethod
    def unhandled(cls, data_source_id: Optional[str] = None) -> "AnalyzeResponse":
        return cls(handled=False, data_source_id=data_source_id)

    @classmethod
    def from_result(cls, result: AnalyticalResponse) -> "AnalyzeResponse":
        return cls(
            handled=True,
            answer=result.answer,
            chart=result.chart,
            chart_title=result.chart_title,
            chart_type=result.chart_type,
            context=ContextModel.from_context(result.context),
            data=result.data,
            data_source_id=result.data_source_id,
            file_id=result.file_id,
        )


class ChartResponse(BaseModel):
    """Chart payload built from an explicit recommendation."""

    data_source_id: str
    chart: dict[str, Any]

    @field_serializer("chart")
    @classmethod
    def serialize_chart(cls, v: Any) -> Any:
        return convert_numpy(v)
