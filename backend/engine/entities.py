"""
Entity Resolver

Extracts metric, dimension, chart type, aggregation and filters from a
free-text query using the dataset's column names, types and values.
"""

import re
from typing import Iterator, Optional

from core.dataset import ColumnType, Dataset, format_value, is_missing
from core.trace import DecisionTrace
from engine.context import merge_context
from engine.models import Aggregation, ChartType, Entities, QueryContext
from engine.rules import (
    AGGREGATION_RULES,
    ARITHMETIC_KEYWORDS,
    CHART_TYPE_RULES,
    COMMON_DIMENSIONS,
    COMMON_METRICS,
    DEFAULT_AGGREGATION,
    TIME_HINTS,
    contains_any,
    first_match,
)


_TOKEN_SPLIT = re.compile(r"[ _-]+")

# Filter values this short are mostly noise ("a", "no", ...)
MIN_FILTER_VALUE_LENGTH = 3


def is_time_like(column: str) -> bool:
    return contains_any(column.lower(), TIME_HINTS)


class EntityResolver:
    """
    Heuristic entity extraction.

    Column matching runs in two phases: the full column name appearing
    in the query, then any name token of 3+ characters appearing in it.
    Each phase falls back to a fixed vocabulary when no column matches.
    """

    def __init__(self, trace: Optional[DecisionTrace] = None):
        self.trace = trace or DecisionTrace()

    def resolve(
        self,
        query: str,
        dataset: Dataset,
        context: Optional[QueryContext] = None,
    ) -> Entities:
        """Extract entities from a lower-cased query and merge prior context."""
        metric = self.detect_metric(query, dataset)
        entities = Entities(
            metric=metric,
            dimension=self.detect_dimension(query, dataset),
            chart_type=self.detect_chart_type(query),
            aggregation=self.detect_aggregation(query),
        )
        entities = merge_context(entities, context, query, self.trace)
        return entities.evolve(
            filters=self.detect_filters(query, dataset, entities.dimension)
        )

    def _column_matches(
        self,
        query: str,
        columns: list[str],
        skip_short_names: bool = False,
    ) -> Iterator[tuple[str, str]]:
        """(column, phase) pairs: every exact name match, then every token match."""
        if skip_short_names:
            columns = [c for c in columns if len(c) > 2 or c.lower() == "id"]

        for col in columns:
            if col.lower() in query:
                yield col, "name"

        for col in columns:
            tokens = _TOKEN_SPLIT.split(col.lower())
            if any(len(token) >= 3 and token in query for token in tokens):
                yield col, "token"

    def detect_metric(self, query: str, dataset: Dataset) -> Optional[str]:
        """
        Column (or vocabulary word) the query measures.

        The first match wins. With arithmetic wording (average/sum/total)
        non-numeric columns are passed over.
        """
        arithmetic = contains_any(query, ARITHMETIC_KEYWORDS)
        for col, phase in self._column_matches(query, dataset.column_names):
            if arithmetic and not dataset.is_numeric(col):
                continue
            self.trace.record("metric", f"column_{phase}", column=col)
            return col

        word = next((m for m in COMMON_METRICS if m in query), None)
        if word:
            self.trace.record("metric", "vocabulary", word=word)
        else:
            self.trace.record("metric", "none")
        return word

    def detect_dimension(self, query: str, dataset: Dataset) -> Optional[str]:
        """
        Column (or vocabulary word) to group by.

        Same matching as the metric without the numeric gate. The result
        may equal the metric; conflict resolution settles which role wins.
        """
        match = next(self._column_matches(query, dataset.column_names, skip_short_names=True), None)
        if match:
            col, phase = match
            self.trace.record("dimension", f"column_{phase}", column=col)
            return col

        word = next((d for d in COMMON_DIMENSIONS if d in query), None)
        if word:
            self.trace.record("dimension", "vocabulary", word=word)
        else:
            self.trace.record("dimension", "none")
        return word

    def detect_chart_type(self, query: str) -> Optional[ChartType]:
        rule = first_match(CHART_TYPE_RULES, query)
        if rule is None:
            return None
        self.trace.record(
            "chart_type", rule.result.value, keyword=rule.matched_keyword(query)
        )
        return rule.result

    def detect_aggregation(self, query: str) -> Aggregation:
        rule = first_match(AGGREGATION_RULES, query)
        if rule is None:
            return DEFAULT_AGGREGATION
        self.trace.record(
            "aggregation", rule.result.value, keyword=rule.matched_keyword(query)
        )
        return rule.result

    def detect_filters(
        self,
        query: str,
        dataset: Dataset,
        dimension: Optional[str] = None,
    ) -> dict[str, str]:
        """
        Categorical values mentioned in the query, at most one per column.

        Candidate values are tried longest first so that a short value
        cannot pre-empt a longer one containing it ("al" vs "alpha corp").
        Equal-length values keep first-seen order.
        """
        filters: dict[str, str] = {}

        for col in dataset.columns_of_type(ColumnType.STRING):
            if col == dimension:
                continue

            distinct = dict.fromkeys(
                format_value(v).lower()
                for v in dataset.values(col)
                if not is_missing(v)
            )
            candidates = sorted(
                (v for v in distinct if len(v) >= MIN_FILTER_VALUE_LENGTH),
                key=len,
                reverse=True,
            )

            matched = next((v for v in candidates if v in query), None)
            if matched is None:
                continue

            filters[col] = matched
            self.trace.record("filter", "match", column=col, value=matched)

            ties = [v for v in candidates if len(v) == len(matched) and v != matched and v in query]
            if ties:
                self.trace.record("filter", "filter_tie", column=col, chosen=matched, others=ties)

        return filters
