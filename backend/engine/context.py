"""
Context Merger

Reconciles freshly extracted entities with the previous turn's context,
then settles metric/dimension conflicts and the default aggregation.
"""

from typing import Optional

from core.trace import DecisionTrace
from engine.models import Aggregation, Entities, QueryContext
from engine.rules import (
    EXPLICIT_SUM_KEYWORDS,
    GROUPING_KEYWORDS,
    LIST_KEYWORDS,
    contains_any,
)


def inherit_context(
    entities: Entities,
    context: Optional[QueryContext],
    trace: DecisionTrace,
) -> Entities:
    """Fill what the query left out from the previous turn."""
    if context is None:
        return entities

    metric, dimension, aggregation = entities.metric, entities.dimension, entities.aggregation

    if dimension and not metric and context.metric:
        metric = context.metric
        trace.record("context", "inherit_metric", metric=metric)
    elif metric and not dimension and context.dimension:
        dimension = context.dimension
        trace.record("context", "inherit_dimension", dimension=dimension)
    elif not metric and not dimension:
        metric, dimension = context.metric, context.dimension
        trace.record("context", "inherit_both", metric=metric, dimension=dimension)

    # An earlier explicit aggregation survives a query that only got the default
    if (
        aggregation == Aggregation.SUM
        and context.aggregation not in (None, Aggregation.SUM, Aggregation.COUNT)
    ):
        aggregation = context.aggregation
        trace.record("context", "inherit_aggregation", aggregation=aggregation.value)

    return entities.evolve(metric=metric, dimension=dimension, aggregation=aggregation)


def resolve_conflict(entities: Entities, query: str, trace: DecisionTrace) -> Entities:
    """When one column was resolved as both metric and dimension, keep one role."""
    metric, dimension = entities.metric, entities.dimension
    if not (metric and dimension and metric.lower() == dimension.lower()):
        return entities

    if contains_any(query, GROUPING_KEYWORDS) or entities.chart_type:
        trace.record("conflict", "prefer_dimension", column=dimension)
        return entities.evolve(metric=None)

    trace.record("conflict", "prefer_metric", column=metric)
    return entities.evolve(dimension=None)


def refine_aggregation(entities: Entities, query: str, trace: DecisionTrace) -> Entities:
    """Bare listings and metric-less queries count rather than sum."""
    if entities.aggregation != Aggregation.SUM:
        return entities
    if not (contains_any(query, LIST_KEYWORDS) or not entities.metric):
        return entities
    if contains_any(query, EXPLICIT_SUM_KEYWORDS):
        return entities

    trace.record("aggregation", "refined_to_count")
    return entities.evolve(aggregation=Aggregation.COUNT)


def merge_context(
    entities: Entities,
    context: Optional[QueryContext],
    query: str,
    trace: Optional[DecisionTrace] = None,
) -> Entities:
    trace = trace or DecisionTrace()
    entities = inherit_context(entities, context, trace)
    entities = resolve_conflict(entities, query, trace)
    return refine_aggregation(entities, query, trace)
