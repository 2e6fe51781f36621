"""
Narrator

Renders answer text for scalar, grouped, list and empty-filter results.
Numbers are shown with thousands separators and trailing zeros dropped.
"""

import numbers
import re
from typing import Any, Optional, Sequence

from core.dataset import format_value
from engine.models import Aggregation, AggregationRow
from engine.rules import (
    BOTTOM_HIGHLIGHT_KEYWORDS,
    PEAK_KEYWORDS,
    QUIET_HIGHLIGHT_KEYWORDS,
    contains_any,
)


_YEAR_PATTERN = re.compile(r"\b(20\d{2})\b")

SCALAR_LABELS = {
    Aggregation.AVG: "Average",
    Aggregation.MAX: "Top",
    Aggregation.MIN: "Lowest",
}


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def format_number(value: Any, max_decimals: int = 2) -> str:
    """1234.5 -> '1,234.5'; non-numbers are shown as-is."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return format_value(value)
    text = f"{value:,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def describe(aggregation: Aggregation, value_field: str) -> str:
    """Label of a grouped series, e.g. 'Average Sales' or 'Count'."""
    if aggregation == Aggregation.COUNT and value_field == "count":
        return "Count"
    label = "Average" if aggregation == Aggregation.AVG else capitalize(aggregation.value)
    return f"{label} {capitalize(value_field)}"


def narrate_scalar(
    query: str,
    aggregation: Aggregation,
    metric: Optional[str],
    value: Any,
) -> str:
    text = format_number(value)
    if aggregation == Aggregation.COUNT and not metric:
        return f"The total count is **{text}**."

    label = SCALAR_LABELS.get(aggregation, capitalize(aggregation.value))
    if "performer" in query:
        label += " performer"

    answer = f"The {label} {capitalize(metric) if metric else 'Records'}"
    year = _YEAR_PATTERN.search(query)
    if year:
        answer += f" in {year.group(1)}"
    return answer + f" is **{text}**."


def narrate_list(dimension: str, values: Sequence[Any], limit: int = 20) -> str:
    listed = ", ".join(format_value(v) for v in values[:limit])
    if len(values) > limit:
        listed += f", and {len(values) - limit} more…"
    return f"Here is the list of **{capitalize(dimension)}**:\n{listed}"


def narrate_empty_filter(filters: dict[str, str]) -> str:
    described = ", ".join(f'{col}="{value}"' for col, value in filters.items())
    return f"I couldn't find any data matching your filter for **{described}**."


def narrate_grouped(
    query: str,
    aggregation: Aggregation,
    value_field: str,
    dimension: str,
    rows: Sequence[AggregationRow],
    chronological: bool,
) -> str:
    """
    Headline plus one insight sentence.

    Time series get a trend sentence (and the peak point on top/peak
    wording). Categorical results name the top row, or the bottom one
    on lowest/min/bottom/worst wording or a min aggregation. Rows are
    expected in display order, i.e. value-descending when categorical.
    """
    desc = describe(aggregation, value_field)
    dim_label = capitalize(dimension)
    answer = f"Here is the **{desc} by {dim_label}**."
    if not rows:
        return answer

    if chronological:
        answer += "\n\nThe chart identifies the **trend over time**."
        if contains_any(query, PEAK_KEYWORDS):
            peak = max(rows, key=lambda row: row.metric_value)
            answer += (
                f" The highest point was in **{peak.dimension_value}**"
                f" ({format_number(peak.metric_value, 1)})."
            )
        return answer

    if contains_any(query, QUIET_HIGHLIGHT_KEYWORDS):
        return answer

    bottom = contains_any(query, BOTTOM_HIGHLIGHT_KEYWORDS) or aggregation == Aggregation.MIN
    item = rows[-1] if bottom else rows[0]
    position = "lowest" if bottom else "top"

    return answer + (
        f"\n\nThe {position} {dim_label} is **{item.dimension_value}**"
        f" with a {desc.lower()} of **{format_number(item.metric_value, 1)}**."
    )
