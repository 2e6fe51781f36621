"""
Aggregator

Scalar and grouped aggregation over a Dataset, Top-N bucketing, and
breakdown pivoting shared by the engine and the chart builder.
"""

import numbers
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence, Union

import numpy as np

from core.dataset import Dataset, Row, format_key, format_value, is_missing, parse_number
from engine.models import Aggregation, AggregationRow


BREAKDOWN_SEPARATOR = " | "


def _median(values: Sequence[float]) -> float:
    return float(np.median(values)) if len(values) else 0.0


def _mode(values: Sequence[float]) -> float:
    """Most frequent value; ties go to the value seen first."""
    if not values:
        return 0.0
    counts = Counter(values)
    return float(max(counts, key=counts.get))


AGGREGATIONS: dict[Aggregation, Callable[[Sequence[float]], float]] = {
    Aggregation.SUM: lambda x: float(np.sum(x)) if len(x) else 0.0,
    Aggregation.AVG: lambda x: float(np.mean(x)) if len(x) else 0.0,
    Aggregation.COUNT: lambda x: float(len(x)),
    Aggregation.MIN: lambda x: float(min(x)) if len(x) else 0.0,
    Aggregation.MAX: lambda x: float(max(x)) if len(x) else 0.0,
    Aggregation.MEDIAN: _median,
    Aggregation.MODE: _mode,
}


def aggregate(values: Sequence[float], aggregation: Aggregation) -> float:
    return AGGREGATIONS[aggregation](values)


def numeric_values(values: Iterable[Any]) -> list[float]:
    """Parse values as numbers, dropping the ones that do not parse."""
    parsed = (parse_number(v) for v in values)
    return [v for v in parsed if v is not None]


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def scalar_value(
    dataset: Dataset,
    metric: Optional[str],
    aggregation: Aggregation,
) -> Union[float, Any]:
    """
    Aggregate a whole column to one value.

    count without a metric is the row count. min/max order the raw
    values (numerically when all are numbers, otherwise as text) and
    return the raw extreme; the other functions drop unparseable values.
    """
    if aggregation == Aggregation.COUNT and not metric:
        return len(dataset)

    values = [v for v in dataset.values(metric) if not is_missing(v)] if metric else []

    if aggregation == Aggregation.COUNT:
        return len(values)
    if not values:
        return 0

    if aggregation in (Aggregation.MIN, Aggregation.MAX):
        if all(_is_number(v) for v in values):
            ordered = sorted(values)
        else:
            ordered = sorted(values, key=format_value)
        return ordered[0] if aggregation == Aggregation.MIN else ordered[-1]

    return aggregate(numeric_values(values), aggregation)


def group_values(
    rows: Iterable[Row],
    key: Callable[[Row], Any],
    metric: Optional[str],
) -> dict[Any, list[float]]:
    """
    Partition metric values by key, groups in first-seen order.

    Without a metric each row contributes 1. Unparseable metric values
    are dropped but their group is still created.
    """
    groups: dict[Any, list[float]] = {}
    for row in rows:
        bucket = groups.setdefault(key(row), [])
        if metric is None:
            bucket.append(1.0)
            continue
        value = parse_number(row.get(metric))
        if value is not None:
            bucket.append(value)
    return groups


def aggregate_groups(
    dataset: Dataset,
    dimension: str,
    metric: Optional[str],
    aggregation: Aggregation,
) -> list[AggregationRow]:
    """One row per distinct dimension value, in first-seen order."""
    groups = group_values(dataset, lambda row: format_key(row.get(dimension)), metric)
    return [
        AggregationRow(dimension_value=name, metric_value=aggregate(values, aggregation))
        for name, values in groups.items()
    ]


def breakdown_key(row: Row, dimensions: Sequence[str]) -> str:
    """Composite breakdown label, e.g. 'East | Online'."""
    return BREAKDOWN_SEPARATOR.join(format_key(row.get(d)) for d in dimensions)


def aggregate_breakdown(
    dataset: Dataset,
    dimension: str,
    breakdown_dimensions: Sequence[str],
    metric: Optional[str],
    aggregation: Aggregation,
    value_field: str,
) -> list[Row]:
    """
    Aggregate per (dimension, breakdown values) combination.

    Returns records carrying the dimension, every breakdown column and
    the aggregated value under value_field, ready for pivoting.
    """
    columns = (dimension, *breakdown_dimensions)
    groups = group_values(
        dataset,
        lambda row: tuple(format_key(row.get(c)) for c in columns),
        metric,
    )
    return [
        {**dict(zip(columns, key)), value_field: aggregate(values, aggregation)}
        for key, values in groups.items()
    ]


def bucket_top_n(
    rows: Sequence[AggregationRow],
    limit: int = 10,
    others_label: str = "Others",
) -> list[AggregationRow]:
    """
    Keep the `limit` largest categories and sum the rest into one bucket.

    Kept rows stay in their incoming order; the synthetic bucket is last.
    """
    if len(rows) <= limit:
        return list(rows)

    ranked = sorted(range(len(rows)), key=lambda i: -rows[i].metric_value)
    keep = set(ranked[:limit])
    others = sum(rows[i].metric_value for i in ranked[limit:])
    return [
        *(row for i, row in enumerate(rows) if i in keep),
        AggregationRow(dimension_value=others_label, metric_value=float(others)),
    ]


@dataclass(frozen=True)
class Series:
    """One named series, one value per pivot category."""

    name: str
    values: tuple[float, ...]


@dataclass(frozen=True)
class PivotTable:
    """category -> breakdown -> value, laid out as series."""

    categories: tuple[str, ...]
    series: tuple[Series, ...]

    def category_totals(self) -> tuple[float, ...]:
        return tuple(
            sum(s.values[i] for s in self.series)
            for i in range(len(self.categories))
        )


def pivot(cells: Iterable[tuple[str, str, float]]) -> PivotTable:
    """
    Pivot (category, breakdown, value) cells.

    Values of repeated cells are summed; categories and breakdowns keep
    first-seen order and missing cells are 0.
    """
    table: dict[tuple[str, str], float] = {}
    categories: dict[str, None] = {}
    breakdowns: dict[str, None] = {}
    for category, breakdown, value in cells:
        categories.setdefault(category)
        breakdowns.setdefault(breakdown)
        table[(category, breakdown)] = table.get((category, breakdown), 0.0) + value

    return PivotTable(
        categories=tuple(categories),
        series=tuple(
            Series(
                name=breakdown,
                values=tuple(table.get((c, breakdown), 0.0) for c in categories),
            )
            for breakdown in breakdowns
        ),
    )


def normalize_percent(table: PivotTable) -> PivotTable:
    """Rescale each category so its breakdown values sum to 100."""
    totals = table.category_totals()
    return PivotTable(
        categories=table.categories,
        series=tuple(
            Series(
                name=s.name,
                values=tuple(
                    (v / total * 100) if total else 0.0
                    for v, total in zip(s.values, totals)
                ),
            )
            for s in table.series
        ),
    )
