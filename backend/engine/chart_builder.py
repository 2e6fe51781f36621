"""
Chart Builder

Turns a chart recommendation and aggregated records into a
renderer-agnostic chart payload (labels plus named value series).
"""

from typing import Any, Optional, Sequence

from core.dataset import Row, format_key, parse_number
from core.logging_config import get_logger
from engine.aggregator import PivotTable, breakdown_key, bucket_top_n, normalize_percent, pivot
from engine.models import AggregationRow, ChartHints, ChartRecommendation, ChartType


logger = get_logger("chart_builder")

# Only these chart types can carry one series per breakdown key
BREAKDOWN_CHART_TYPES = (ChartType.BAR, ChartType.LINE, ChartType.AREA)

SORT_ORDERS = ("none", "asc", "desc")


class ChartBuilder:
    """
    Builds chart payloads.

    Single-series charts are re-summed per category, optionally sorted,
    and bucketed to the largest categories plus an "Others" entry unless
    full view is requested. Bar, line and area charts with breakdown
    dimensions are pivoted into one series per breakdown key.
    """

    def __init__(self, top_n: int = 10, others_label: str = "Others"):
        self.top_n = top_n
        self.others_label = others_label

    def build(
        self,
        recommendation: ChartRecommendation,
        records: Sequence[Row],
        hints: Optional[ChartHints] = None,
    ) -> dict[str, Any]:
        hints = hints or ChartHints()
        if hints.sort_order not in SORT_ORDERS:
            logger.warning(f"Unknown sort order '{hints.sort_order}', keeping input order")

        breakdown = [
            d for d in hints.breakdown_dimensions
            if d != recommendation.dimension_column
        ]
        if breakdown and recommendation.chart_type in BREAKDOWN_CHART_TYPES:
            return self._breakdown_chart(recommendation, records, breakdown, hints)

        rows = self._sorted(self._sum_by_category(recommendation, records), hints.sort_order)
        if not hints.full_view:
            rows = bucket_top_n(rows, self.top_n, self.others_label)

        if recommendation.chart_type == ChartType.PIE:
            return self._pie_chart(recommendation, rows, hints)

        payload = self._base_payload(recommendation, hints)
        payload["labels"] = [row.dimension_value for row in rows]
        payload["series"] = [{
            "name": recommendation.metric_column,
            "values": [row.metric_value for row in rows],
        }]
        return payload

    def _value(self, recommendation: ChartRecommendation, record: Row) -> float:
        value = parse_number(record.get(recommendation.metric_column))
        if value is None:
            # Raw rows under a count carry no value field, each counts once
            return 1.0 if recommendation.metric_column == "count" else 0.0
        return value

    def _sum_by_category(
        self,
        recommendation: ChartRecommendation,
        records: Sequence[Row],
    ) -> list[AggregationRow]:
        totals: dict[str, float] = {}
        for record in records:
            key = format_key(record.get(recommendation.dimension_column))
            totals[key] = totals.get(key, 0.0) + self._value(recommendation, record)
        return [AggregationRow(name, value) for name, value in totals.items()]

    @staticmethod
    def _sorted(rows: list[AggregationRow], sort_order: str) -> list[AggregationRow]:
        if sort_order == "asc":
            return sorted(rows, key=lambda row: row.metric_value)
        if sort_order == "desc":
            return sorted(rows, key=lambda row: -row.metric_value)
        return rows

    def _breakdown_chart(
        self,
        recommendation: ChartRecommendation,
        records: Sequence[Row],
        breakdown: Sequence[str],
        hints: ChartHints,
    ) -> dict[str, Any]:
        table: PivotTable = pivot(
            (
                format_key(record.get(recommendation.dimension_column)),
                breakdown_key(record, breakdown),
                self._value(recommendation, record),
            )
            for record in records
        )
        if hints.normalize:
            table = normalize_percent(table)

        payload = self._base_payload(recommendation, hints)
        payload["labels"] = list(table.categories)
        payload["series"] = [
            {"name": s.name, "values": list(s.values)} for s in table.series
        ]
        payload["breakdown"] = list(breakdown)
        payload["stacked"] = hints.normalize or recommendation.chart_type == ChartType.BAR
        payload["normalized"] = hints.normalize
        return payload

    def _pie_chart(
        self,
        recommendation: ChartRecommendation,
        rows: Sequence[AggregationRow],
        hints: ChartHints,
    ) -> dict[str, Any]:
        total = sum(row.metric_value for row in rows)
        payload = self._base_payload(recommendation, hints)
        payload["labels"] = [row.dimension_value for row in rows]
        payload["series"] = [{
            "name": recommendation.metric_column,
            "values": [
                {"name": row.dimension_value, "value": row.metric_value}
                for row in rows
            ],
        }]
        payload["percentages"] = [
            round(row.metric_value / total * 100, 1) if total else 0.0
            for row in rows
        ]
        return payload

    @staticmethod
    def _base_payload(recommendation: ChartRecommendation, hints: ChartHints) -> dict[str, Any]:
        return {
            "type": recommendation.chart_type.value,
            "title": recommendation.title,
            "x_axis": recommendation.dimension_column,
            "y_axis": recommendation.metric_column,
            "priority": recommendation.priority,
            "full_view": hints.full_view,
            "stacked": False,
            "normalized": False,
        }


def build_chart(
    recommendation: ChartRecommendation,
    records: Sequence[Row],
    hints: Optional[ChartHints] = None,
    top_n: int = 10,
    others_label: str = "Others",
) -> dict[str, Any]:
    return ChartBuilder(top_n=top_n, others_label=others_label).build(recommendation, records, hints)
