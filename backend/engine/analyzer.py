"""
Analytical Engine

Answers a natural-language analytical question over one data source.

Flow:
1. Classify intent (non-analytical queries return None before any I/O)
2. Fetch the dataset
3. Resolve entities and merge the previous turn's context
4. Filter rows
5. Answer as a list, a scalar or a grouped aggregation with a chart

Business-rule gaps (no intent, no data, nothing to measure or group by)
return None so the caller can fall back to another answering path.
"""

from dataclasses import replace
from typing import Optional

from config import EngineSettings, get_settings
from core.dataset import ColumnType, Dataset, format_value, is_missing
from core.logging_config import engine_logger as logger
from core.trace import DecisionTrace, LoggingTrace
from engine.aggregator import aggregate_breakdown, aggregate_groups, bucket_top_n, scalar_value
from engine.chart_builder import BREAKDOWN_CHART_TYPES, ChartBuilder
from engine.entities import EntityResolver, is_time_like
from engine.intent import is_analytical
from engine.models import (
    Aggregation,
    AnalyticalResponse,
    ChartHints,
    ChartRecommendation,
    ChartType,
    Entities,
    QueryContext,
)
from engine.narrator import (
    capitalize,
    describe,
    narrate_empty_filter,
    narrate_grouped,
    narrate_list,
    narrate_scalar,
)
from engine.row_filter import apply_filters
from engine.rules import (
    AUTO_DIMENSION_KEYWORDS,
    CATEGORY_HINTS,
    FINANCIAL_HINTS,
    LIST_KEYWORDS,
    NON_DIMENSION_HINTS,
    SHARE_KEYWORDS,
    VISUAL_KEYWORDS,
    contains_any,
)
from engine.sorter import is_time_dimension, sort_rows
from store.fetcher import DatasetFetcher


# Longer first values are free text rather than categories
MAX_AUTO_DIMENSION_VALUE_LENGTH = 50


def resolve_field(name: Optional[str], columns: list[str]) -> Optional[str]:
    """Map an entity to a real column: exact (case-insensitive), then containment."""
    if not name:
        return None
    target = name.lower()
    exact = next((c for c in columns if c.lower() == target), None)
    if exact is not None:
        return exact
    return next((c for c in columns if target in c.lower()), None)


def is_financial(column: str) -> bool:
    return contains_any(column.lower(), FINANCIAL_HINTS)


class AnalyticalEngine:
    """
    Stateless query pipeline.

    The conversational context is passed in and returned with each
    response; nothing is kept between calls.
    """

    def __init__(
        self,
        fetcher: DatasetFetcher,
        settings: Optional[EngineSettings] = None,
        trace: Optional[DecisionTrace] = None,
        chart_builder: Optional[ChartBuilder] = None,
    ):
        self.fetcher = fetcher
        self.settings = settings or get_settings().engine
        self.trace = trace or LoggingTrace()
        self.resolver = EntityResolver(self.trace)
        self.chart_builder = chart_builder or ChartBuilder(
            top_n=self.settings.top_n_categories,
            others_label=self.settings.others_label,
        )

    async def analyze(
        self,
        query: str,
        data_source_id: Optional[str],
        context: Optional[QueryContext] = None,
        hints: Optional[ChartHints] = None,
    ) -> Optional[AnalyticalResponse]:
        if not data_source_id:
            self.trace.record("engine", "no_data_source")
            return None
        if not is_analytical(query.lower()):
            self.trace.record("intent", "not_analytical")
            return None

        result = await self.fetcher.fetch(data_source_id)
        if result.is_empty:
            self.trace.record("engine", "no_data", data_source_id=data_source_id)
            return None

        response = self.analyze_dataset(query, result.dataset, context, hints)
        if response is None:
            return None
        return response.evolve(data_source_id=data_source_id, file_id=result.file_id)

    def analyze_dataset(
        self,
        query: str,
        dataset: Dataset,
        context: Optional[QueryContext] = None,
        hints: Optional[ChartHints] = None,
    ) -> Optional[AnalyticalResponse]:
        """Run the synchronous part of the pipeline over rows already in memory."""
        query = query.lower()
        if not is_analytical(query):
            self.trace.record("intent", "not_analytical")
            return None
        if len(dataset) == 0:
            self.trace.record("engine", "no_data")
            return None

        entities = self.resolver.resolve(query, dataset, context)
        logger.info(
            f"Entities: metric={entities.metric} dimension={entities.dimension} "
            f"chart={entities.chart_type} agg={entities.aggregation.value} "
            f"filters={entities.filters}"
        )

        if entities.filters:
            dataset = apply_filters(dataset, entities.filters)
            logger.debug(f"Rows after filtering: {len(dataset)}")
            if len(dataset) == 0:
                self.trace.record("filter", "empty_result", filters=entities.filters)
                return AnalyticalResponse(answer=narrate_empty_filter(entities.filters))

        return self._generate(query, entities, dataset, hints or ChartHints())

    def _generate(
        self,
        query: str,
        entities: Entities,
        dataset: Dataset,
        hints: ChartHints,
    ) -> Optional[AnalyticalResponse]:
        columns = dataset.column_names
        metric = resolve_field(entities.metric, columns)
        dimension = resolve_field(entities.dimension, columns)
        aggregation = entities.aggregation
        chart_type = entities.chart_type
        self.trace.record("fields", "resolved", metric=metric, dimension=dimension)

        if dimension and self._is_list_request(query, entities, metric, dimension):
            return self._list_response(dataset, metric, dimension, entities)

        if not dimension and self._wants_auto_dimension(query, metric, chart_type):
            dimension = self.auto_dimension(dataset, exclude=metric)
            if dimension is None:
                self.trace.record("engine", "short_circuit", reason="no_dimension")
                return None

        if not dimension:
            return self._scalar_response(query, dataset, metric, entities)

        if not metric and aggregation != Aggregation.COUNT:
            metric = self.fallback_metric(dataset, exclude=dimension)
            if metric is None and chart_type:
                self.trace.record("aggregation", "chart_without_metric_to_count")
                aggregation = Aggregation.COUNT
        if not metric and aggregation != Aggregation.COUNT:
            self.trace.record("engine", "short_circuit", reason="no_metric")
            return None

        if chart_type is None:
            chart_type = self.default_chart_type(query, dimension)

        return self._grouped_response(
            query, dataset, metric, dimension, aggregation, chart_type, hints
        )

    @staticmethod
    def _is_list_request(
        query: str,
        entities: Entities,
        metric: Optional[str],
        dimension: str,
    ) -> bool:
        return (
            contains_any(query, LIST_KEYWORDS)
            and not contains_any(query, VISUAL_KEYWORDS)
            and entities.chart_type is None
            and (metric is None or metric == dimension)
        )

    @staticmethod
    def _wants_auto_dimension(
        query: str,
        metric: Optional[str],
        chart_type: Optional[ChartType],
    ) -> bool:
        """A chart of a resolved metric was asked for, by chart type or visual wording."""
        if not metric:
            return False
        if chart_type is not None:
            return True
        return is_financial(metric) and contains_any(query, AUTO_DIMENSION_KEYWORDS)

    def auto_dimension(self, dataset: Dataset, exclude: Optional[str] = None) -> Optional[str]:
        """
        Pick a grouping column when the query named none.

        Order: a temporal-looking name, a category-looking name, then the
        first short text column whose name is not an id/url/image.
        """
        columns = [c for c in dataset.column_names if c != exclude]

        time_column = next((c for c in columns if is_time_like(c)), None)
        if time_column:
            self.trace.record("auto_dimension", "time", column=time_column)
            return time_column

        category = next((c for c in columns if contains_any(c.lower(), CATEGORY_HINTS)), None)
        if category:
            self.trace.record("auto_dimension", "category", column=category)
            return category

        first_row = dataset.rows[0]
        for col in columns:
            value = first_row.get(col)
            if (
                dataset.column_type(col) == ColumnType.STRING
                and isinstance(value, str)
                and len(value) < MAX_AUTO_DIMENSION_VALUE_LENGTH
                and not contains_any(col.lower(), NON_DIMENSION_HINTS)
            ):
                self.trace.record("auto_dimension", "text", column=col)
                return col

        self.trace.record("auto_dimension", "none")
        return None

    def fallback_metric(self, dataset: Dataset, exclude: Optional[str] = None) -> Optional[str]:
        """First numeric, non-temporal column that is not an identifier."""
        metric = next(
            (
                c for c in dataset.columns_of_type(ColumnType.NUMERIC)
                if c != exclude and "id" not in c.lower() and not is_time_like(c)
            ),
            None,
        )
        self.trace.record("metric", "fallback_numeric" if metric else "fallback_none", column=metric)
        return metric

    def default_chart_type(self, query: str, dimension: str) -> ChartType:
        if is_time_like(dimension):
            chart_type = ChartType.LINE
        elif contains_any(query, SHARE_KEYWORDS):
            chart_type = ChartType.PIE
        else:
            chart_type = ChartType.BAR
        self.trace.record("chart_type", "default", chart_type=chart_type.value)
        return chart_type

    def _list_response(
        self,
        dataset: Dataset,
        metric: Optional[str],
        dimension: str,
        entities: Entities,
    ) -> AnalyticalResponse:
        self.trace.record("mode", "list", dimension=dimension)
        distinct = list(dict.fromkeys(
            format_value(v) for v in dataset.values(dimension) if not is_missing(v)
        ))
        return AnalyticalResponse(
            answer=narrate_list(dimension, distinct, self.settings.list_limit),
            context=QueryContext(
                metric=metric,
                dimension=dimension,
                chart_type=None,
                aggregation=entities.aggregation,
            ),
        )

    def _scalar_response(
        self,
        query: str,
        dataset: Dataset,
        metric: Optional[str],
        entities: Entities,
    ) -> Optional[AnalyticalResponse]:
        aggregation = entities.aggregation
        if not metric and aggregation != Aggregation.COUNT:
            self.trace.record("engine", "short_circuit", reason="no_metric_no_dimension")
            return None

        self.trace.record("mode", "scalar", metric=metric, aggregation=aggregation.value)
        value = scalar_value(dataset, metric, aggregation)
        return AnalyticalResponse(
            answer=narrate_scalar(query, aggregation, metric, value),
            context=QueryContext(
                metric=metric,
                dimension=None,
                chart_type=entities.chart_type,
                aggregation=aggregation,
            ),
        )

    def _grouped_response(
        self,
        query: str,
        dataset: Dataset,
        metric: Optional[str],
        dimension: str,
        aggregation: Aggregation,
        chart_type: ChartType,
        hints: ChartHints,
    ) -> AnalyticalResponse:
        value_field = metric or "count"
        chronological = is_time_dimension(dimension, chart_type)
        self.trace.record(
            "sort",
            "chronological" if chronological else "value_desc",
            dimension=dimension,
        )

        rows = sort_rows(aggregate_groups(dataset, dimension, metric, aggregation), chronological)
        desc = describe(aggregation, value_field)
        title = f"{desc} by {capitalize(dimension)}"

        hints = replace(
            hints,
            breakdown_dimensions=tuple(
                d for d in hints.breakdown_dimensions
                if d in dataset.column_names and d != dimension
            ),
        )
        if hints.breakdown_dimensions and chart_type in BREAKDOWN_CHART_TYPES:
            self.trace.record("chart", "breakdown", dimensions=list(hints.breakdown_dimensions))
            records = aggregate_breakdown(
                dataset, dimension, hints.breakdown_dimensions, metric, aggregation, value_field
            )
        else:
            records = [row.to_record(dimension, value_field) for row in rows]

        chart = self.chart_builder.build(
            ChartRecommendation(
                chart_type=chart_type,
                dimension_column=dimension,
                metric_column=value_field,
                title=title,
            ),
            records,
            hints,
        )

        shown = rows
        if not hints.full_view and len(rows) > self.settings.top_n_categories:
            self.trace.record("chart", "bucketed", categories=len(rows))
            shown = bucket_top_n(rows, self.settings.top_n_categories, self.settings.others_label)

        return AnalyticalResponse(
            answer=narrate_grouped(query, aggregation, value_field, dimension, rows, chronological),
            chart=chart,
            chart_title=title,
            chart_type=chart_type,
            context=QueryContext(
                metric=metric,
                dimension=dimension,
                chart_type=chart_type,
                aggregation=aggregation,
            ),
            data=[row.to_record(dimension, value_field) for row in shown],
        )
