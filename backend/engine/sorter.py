"""Ordering of aggregated rows."""

from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Optional, Sequence

from core.dataset import parse_date
from engine.entities import is_time_like
from engine.models import AggregationRow, ChartType


def is_time_dimension(dimension: str, chart_type: Optional[ChartType]) -> bool:
    """Line charts and date/year/month/time columns are ordered chronologically."""
    return chart_type == ChartType.LINE or is_time_like(dimension)


def _comparable(value: datetime) -> datetime:
    # Aware and naive datetimes cannot be compared with each other
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def compare_chronological(a: str, b: str) -> int:
    """Compare as dates when both parse, otherwise as text."""
    date_a, date_b = parse_date(a), parse_date(b)
    if date_a is not None and date_b is not None:
        left, right = _comparable(date_a), _comparable(date_b)
    else:
        left, right = a, b
    return (left > right) - (left < right)


def sort_rows(rows: Sequence[AggregationRow], chronological: bool) -> list[AggregationRow]:
    """
    Chronological ascending, or value descending.

    Both orderings are stable, so equal keys keep first-seen order.
    """
    if chronological:
        return sorted(
            rows,
            key=cmp_to_key(lambda x, y: compare_chronological(x.dimension_value, y.dimension_value)),
        )
    return sorted(rows, key=lambda row: -row.metric_value)
