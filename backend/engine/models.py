"""
Query Engine Models

Entities, conversational context, aggregation rows and responses
exchanged between pipeline stages.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


class Aggregation(str, Enum):
    """Supported aggregation functions."""

    SUM = "sum"
    AVG = "avg"
    COUNT = "count"
    MIN = "min"
    MAX = "max"
    MEDIAN = "median"
    MODE = "mode"


class ChartType(str, Enum):
    """Chart types the engine can recommend."""

    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    SCATTER = "scatter"
    AREA = "area"
    FUNNEL = "funnel"
    GAUGE = "gauge"
    RADAR = "radar"
    TREEMAP = "treemap"
    HEATMAP = "heatmap"
    SUNBURST = "sunburst"
    SANKEY = "sankey"
    WATERFALL = "waterfall"
    POLAR_BAR = "polar-bar"
    THEME_RIVER = "themeRiver"
    PICTORIAL_BAR = "pictorialBar"


@dataclass(frozen=True)
class Entities:
    """Entities extracted from one query."""

    metric: Optional[str] = None
    dimension: Optional[str] = None
    chart_type: Optional[ChartType] = None
    aggregation: Aggregation = Aggregation.SUM
    filters: dict[str, str] = field(default_factory=dict)

    def evolve(self, **changes: Any) -> "Entities":
        return replace(self, **changes)


@dataclass(frozen=True)
class QueryContext:
    """Resolved entities of the previous conversational turn."""

    metric: Optional[str] = None
    dimension: Optional[str] = None
    chart_type: Optional[ChartType] = None
    aggregation: Optional[Aggregation] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "dimension": self.dimension,
            "chart_type": self.chart_type.value if self.chart_type else None,
            "aggregation": self.aggregation.value if self.aggregation else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Optional["QueryContext"]:
        if not data:
            return None
        chart_type = data.get("chart_type", data.get("chartType"))
        aggregation = data.get("aggregation")
        return cls(
            metric=data.get("metric"),
            dimension=data.get("dimension"),
            chart_type=ChartType(chart_type) if chart_type else None,
            aggregation=Aggregation(aggregation) if aggregation else None,
        )


@dataclass(frozen=True)
class AggregationRow:
    """One grouped value."""

    dimension_value: str
    metric_value: float

    def to_record(self, dimension: str, value_field: str) -> dict[str, Any]:
        return {dimension: self.dimension_value, value_field: self.metric_value}


@dataclass(frozen=True)
class ChartRecommendation:
    """What to chart; consumed by the chart builder."""

    chart_type: ChartType
    dimension_column: str
    metric_column: str
    title: str = ""
    priority: str = "high"

    def to_dict(self) -> dict[str, Any]:
        return {
            "chart_type": self.chart_type.value,
            "dimension_column": self.dimension_column,
            "metric_column": self.metric_column,
            "title": self.title,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class ChartHints:
    """Rendering hints forwarded to the chart builder."""

    sort_order: str = "none"  # none, asc, desc
    full_view: bool = False
    breakdown_dimensions: tuple[str, ...] = ()
    normalize: bool = False


@dataclass(frozen=True)
class AnalyticalResponse:
    """Answer for one analytical query."""

    answer: str
    chart: Optional[dict[str, Any]] = None
    chart_title: Optional[str] = None
    chart_type: Optional[ChartType] = None
    context: Optional[QueryContext] = None
    data: list[dict[str, Any]] = field(default_factory=list)
    data_source_id: Optional[str] = None
    file_id: Optional[str] = None

    def evolve(self, **changes: Any) -> "AnalyticalResponse":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "chart": self.chart,
            "chart_title": self.chart_title,
            "chart_type": self.chart_type.value if self.chart_type else None,
            "context": self.context.to_dict() if self.context else None,
            "data": self.data,
            "data_source_id": self.data_source_id,
            "file_id": self.file_id,
        }
