"""
Keyword Rule Tables

Ordered (keywords -> result) tables driving intent, chart-type and
aggregation detection, plus the vocabularies used by the resolver.
Earlier rules win, so priority is the position in the table.
"""

from dataclasses import dataclass
from typing import Generic, Iterable, Optional, TypeVar

from engine.models import Aggregation, ChartType


T = TypeVar("T")


@dataclass(frozen=True)
class KeywordRule(Generic[T]):
    """Fires when any keyword is a substring of the query."""

    keywords: tuple[str, ...]
    result: T

    def matches(self, query: str) -> bool:
        return any(keyword in query for keyword in self.keywords)

    def matched_keyword(self, query: str) -> Optional[str]:
        return next((k for k in self.keywords if k in query), None)


def first_match(rules: Iterable[KeywordRule[T]], query: str) -> Optional[KeywordRule[T]]:
    """First rule in table order that matches the query."""
    return next((rule for rule in rules if rule.matches(query)), None)


def contains_any(query: str, keywords: Iterable[str]) -> bool:
    return any(keyword in query for keyword in keywords)


# Special chart types come before the generic ones so that e.g.
# "sales funnel" is not caught by a generic trigger.
CHART_TYPE_RULES: tuple[KeywordRule[ChartType], ...] = (
    KeywordRule(("funnel", "pipeline", "conversion"), ChartType.FUNNEL),
    KeywordRule(("gauge", "dashboard", "meter"), ChartType.GAUGE),
    KeywordRule(("radar", "spider"), ChartType.RADAR),
    KeywordRule(("scatter", "bubble", "correlation"), ChartType.SCATTER),
    KeywordRule(("heatmap", "matrix"), ChartType.HEATMAP),
    KeywordRule(("treemap",), ChartType.TREEMAP),
    KeywordRule(("sunburst",), ChartType.SUNBURST),
    KeywordRule(("sankey", "flow"), ChartType.SANKEY),
    KeywordRule(("waterfall",), ChartType.WATERFALL),
    KeywordRule(("river", "stream"), ChartType.THEME_RIVER),
    KeywordRule(("polar",), ChartType.POLAR_BAR),
    KeywordRule(("pictorial",), ChartType.PICTORIAL_BAR),
    KeywordRule(("area", "fill"), ChartType.AREA),
    KeywordRule(("line", "trend", "over time", "growth"), ChartType.LINE),
    KeywordRule(("pie", "distribution", "share", "breakdown", "proportion"), ChartType.PIE),
    KeywordRule(("bar", "compare", "rank", "vs"), ChartType.BAR),
)

AGGREGATION_RULES: tuple[KeywordRule[Aggregation], ...] = (
    KeywordRule(("average", "avg", "mean"), Aggregation.AVG),
    KeywordRule(("median",), Aggregation.MEDIAN),
    KeywordRule(("mode",), Aggregation.MODE),
    KeywordRule(("count", "how many", "number of"), Aggregation.COUNT),
    KeywordRule(("min", "lowest", "bottom"), Aggregation.MIN),
    KeywordRule(("max", "highest", "top", "peak"), Aggregation.MAX),
)

DEFAULT_AGGREGATION = Aggregation.SUM

# Chart-type names accepted as analytical intent on their own
CHART_TYPE_NAMES = (
    "bar", "line", "pie", "area", "funnel", "gauge", "radar", "scatter",
    "heatmap", "treemap", "sunburst", "sankey", "waterfall", "river",
    "polar", "pictorial",
)

INTENT_KEYWORDS: tuple[str, ...] = (
    "trend", "compare", "distribution", "breakdown", "show me",
    "graph", "chart", "plot", "visualize", "sales", "revenue",
    "count", "average", "total", "top", "performance", "how many",
    "analysis", "sum", "min", "max", "vs", "mean", "median", "mode",
    "list", "what is",
) + CHART_TYPE_NAMES

# A non-numeric column cannot be the metric of these
ARITHMETIC_KEYWORDS = ("average", "sum", "total")

COMMON_METRICS = (
    "sales", "revenue", "amount", "profit", "margin", "cost", "expense",
    "quantity", "units", "volume", "price", "rate", "rating", "score",
    "value", "transaction", "order",
)

COMMON_DIMENSIONS = (
    "date", "time", "year", "month", "day", "quarter",
    "category", "type", "sector", "region", "country", "city",
    "state", "location", "product", "item", "sku",
    "customer", "client", "cashier", "status", "stage",
)

TIME_HINTS = ("date", "year", "month", "time")
FINANCIAL_HINTS = ("sales", "revenue", "profit", "amount")
CATEGORY_HINTS = (
    "category", "sub-category", "region", "segment", "country",
    "state", "product", "item",
)
NON_DIMENSION_HINTS = ("id", "url", "image")

GROUPING_KEYWORDS = (" by ", "list")
LIST_KEYWORDS = ("list",)
VISUAL_KEYWORDS = ("chart", "graph", "plot")
AUTO_DIMENSION_KEYWORDS = VISUAL_KEYWORDS + ("visualize", "show me")
EXPLICIT_SUM_KEYWORDS = ("total", "sum")
BOTTOM_KEYWORDS = ("lowest", "min", "bottom")
BOTTOM_HIGHLIGHT_KEYWORDS = BOTTOM_KEYWORDS + ("worst",)
PEAK_KEYWORDS = ("top", "peak", "highest")
SHARE_KEYWORDS = ("share", "distribution")
QUIET_HIGHLIGHT_KEYWORDS = ("list", "breakdown")
