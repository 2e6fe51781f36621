"""
API Request Schemas

Pydantic models for API request validation.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from engine.models import Aggregation, ChartHints, ChartType, QueryContext


class ContextModel(BaseModel):
    """Entities resolved by the previous conversational turn."""

    metric: Optional[str] = None
    dimension: Optional[str] = None
    chart_type: Optional[ChartType] = Field(
        default=None,
        validation_alias=AliasChoices("chart_type", "chartType"),
    )
    aggregation: Optional[Aggregation] = None

    def to_context(self) -> QueryContext:
        return QueryContext(
            metric=self.metric,
            dimension=self.dimension,
            chart_type=self.chart_type,
            aggregation=self.aggregation,
        )

    @classmethod
    def from_context(cls, context: Optional[QueryContext]) -> Optional["ContextModel"]:
        if context is None:
            return None
        return cls(
            metric=context.metric,
            dimension=context.dimension,
            chart_type=context.chart_type,
            aggregation=context.aggregation,
        )


class RenderingHints(BaseModel):
    """Optional chart rendering hints."""

    full_view: bool = Field(
        default=False,
        description="Show every category instead of Top-N plus Others"
    )
    sort_order: str = Field(
        default="none",
        pattern="^(none|asc|desc)$",
        description="Category order in the chart"
    )
    breakdown_dimensions: list[str] = Field(
        default=[],
        description="Secondary dimensions splitting each category into series"
    )
    normalize: bool = Field(
        default=False,
        description="Rescale breakdown series to 100% per category"
    )

    def to_hints(self) -> ChartHints:
        return ChartHints(
            sort_order=self.sort_order,
            full_view=self.full_view,
            breakdown_dimensions=tuple(self.breakdown_dimensions),
            normalize=self.normalize,
        )


class AnalyzeRequest(RenderingHints):
    """Natural-language analytical question about one data source."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="User question"
    )
    data_source_id: str = Field(
        ...,
        min_length=1,
        description="Data source to answer from"
    )
    context: Optional[ContextModel] = Field(
        default=None,
        description="Context returned by the previous answer"
    )


class ChartRequest(RenderingHints):
    """Chart built directly from an explicit recommendation."""

    dimension: str = Field(..., description="Column to group by")
    metric: Optional[str] = Field(
        default=None,
        description="Column to aggregate (omit to count rows)"
    )
    aggregation: Aggregation = Field(default=Aggregation.SUM)
    chart_type: ChartType = Field(default=ChartType.BAR)
    title: str = Field(default="")
