"""
Test Entity Resolution

Unit tests for intent classification, keyword rule tables and the
entity resolver.
"""

import pytest

from core.dataset import Dataset
from core.trace import RecordingTrace
from engine.entities import EntityResolver
from engine.intent import is_analytical
from engine.models import Aggregation, ChartType
from engine.rules import AGGREGATION_RULES, CHART_TYPE_RULES, KeywordRule, first_match


@pytest.fixture
def dataset():
    return Dataset.from_records([
        {"region": "East", "customer": "Alp", "segment": "Retail", "sales": 100, "unit_price": 5.0, "order_date": "2024-01-05"},
        {"region": "West", "customer": "Alpha", "segment": "Retail", "sales": 300, "unit_price": 7.5, "order_date": "2024-02-10"},
        {"region": "North", "customer": "Beta LLC", "segment": "Wholesale", "sales": 200, "unit_price": 4.0, "order_date": "2024-03-15"},
    ])


@pytest.fixture
def trace():
    return RecordingTrace()


@pytest.fixture
def resolver(trace):
    return EntityResolver(trace)


class TestIntent:
    @pytest.mark.parametrize("query", [
        "show me sales by region",
        "how many orders",
        "pie of revenue",
        "what is the median price",
        "list customers",
    ])
    def test_analytical(self, query):
        assert is_analytical(query)

    @pytest.mark.parametrize("query", [
        "hello there",
        "who wrote this report?",
        "",
    ])
    def test_not_analytical(self, query):
        assert not is_analytical(query)


class TestRuleTables:
    @pytest.mark.parametrize("query,expected", [
        ("show the sales funnel", ChartType.FUNNEL),
        ("conversion trend", ChartType.FUNNEL),
        ("sales trend", ChartType.LINE),
        ("growth of revenue", ChartType.LINE),
        ("revenue share by region", ChartType.PIE),
        ("bar chart of sales", ChartType.BAR),
        ("east vs west", ChartType.BAR),
        ("area chart of sales", ChartType.AREA),
        ("heatmap of sales", ChartType.HEATMAP),
        ("sales river", ChartType.THEME_RIVER),
    ])
    def test_chart_type(self, query, expected):
        assert first_match(CHART_TYPE_RULES, query).result == expected

    def test_no_chart_type(self):
        assert first_match(CHART_TYPE_RULES, "what is the total sales") is None

    @pytest.mark.parametrize("query,expected", [
        ("average sales", Aggregation.AVG),
        ("mean order value", Aggregation.AVG),
        ("median price", Aggregation.MEDIAN),
        ("how many orders", Aggregation.COUNT),
        ("number of customers", Aggregation.COUNT),
        ("lowest sales", Aggregation.MIN),
        ("top region", Aggregation.MAX),
        ("average of the top region", Aggregation.AVG),
    ])
    def test_aggregation(self, query, expected):
        assert first_match(AGGREGATION_RULES, query).result == expected

    def test_earlier_rule_wins(self):
        rules = (
            KeywordRule(("sales",), "first"),
            KeywordRule(("sales", "region"), "second"),
        )
        assert first_match(rules, "sales by region").result == "first"

    def test_matched_keyword(self):
        rule = KeywordRule(("line", "trend"), ChartType.LINE)
        assert rule.matched_keyword("sales trend") == "trend"
        assert rule.matched_keyword("sales") is None


class TestMetricDetection:
    def test_exact_column_name(self, resolver, dataset, trace):
        assert resolver.detect_metric("total sales by region", dataset) == "sales"
        assert trace.find("metric", "column_name").details == {"column": "sales"}

    def test_token_match(self, resolver, dataset, trace):
        assert resolver.detect_metric("average price by region", dataset) == "unit_price"
        assert "column_token" in trace.decisions("metric")

    def test_arithmetic_requires_numeric(self, resolver, dataset):
        assert resolver.detect_metric("average segment", dataset) is None

    def test_first_column_wins(self, resolver, dataset, trace):
        assert resolver.detect_metric("region sales", dataset) == "region"
        assert trace.find("metric", "column_name").details == {"column": "region"}

    def test_exact_name_before_token(self, resolver):
        dataset = Dataset.from_records([{"total_sales": 10, "segment name": "Retail"}])
        assert resolver.detect_metric("segment name sales", dataset) == "segment name"

    def test_vocabulary_fallback(self, resolver, dataset, trace):
        assert resolver.detect_metric("revenue by quarter", dataset) == "revenue"
        assert trace.find("metric", "vocabulary").details == {"word": "revenue"}


class TestDimensionDetection:
    def test_categorical_column(self, resolver, dataset):
        assert resolver.detect_dimension("sales by region", dataset) == "region"

    def test_temporal_column_token(self, resolver, dataset, trace):
        assert resolver.detect_dimension("count by date", dataset) == "order_date"
        assert trace.find("dimension", "column_token").details == {"column": "order_date"}

    def test_numeric_column_not_skipped(self, resolver, dataset):
        assert resolver.detect_dimension("sales trend", dataset) == "sales"

    def test_short_names_skipped(self, resolver):
        dataset = Dataset.from_records([{"ab": "x", "sales": 1}])
        assert resolver.detect_dimension("sales by ab", dataset) != "ab"

    def test_vocabulary_fallback(self, resolver, dataset):
        assert resolver.detect_dimension("revenue by quarter", dataset) == "quarter"

    def test_none(self, resolver, dataset, trace):
        assert resolver.detect_dimension("how much", dataset) is None
        assert trace.decisions("dimension") == ["none"]


class TestFilterDetection:
    def test_longest_value_wins(self, resolver, dataset):
        filters = resolver.detect_filters("sales for alpha", dataset)
        assert filters == {"customer": "alpha"}

    def test_short_values_ignored(self, resolver):
        dataset = Dataset.from_records([{"code": "al", "sales": 1}])
        assert resolver.detect_filters("sales for al", dataset) == {}

    def test_dimension_column_skipped(self, resolver, dataset):
        assert resolver.detect_filters("sales in east by region", dataset, "region") == {}
        assert resolver.detect_filters("sales in east", dataset) == {"region": "east"}

    def test_numeric_columns_never_filter(self, resolver, dataset):
        assert resolver.detect_filters("sales of 300", dataset) == {}

    def test_one_filter_per_column(self, resolver, dataset):
        filters = resolver.detect_filters("retail sales for beta llc", dataset)
        assert filters == {"customer": "beta llc", "segment": "retail"}

    def test_equal_length_tie_recorded(self, resolver, trace):
        dataset = Dataset.from_records([
            {"zone": "North", "sales": 1},
            {"zone": "South", "sales": 2},
        ])

        filters = resolver.detect_filters("sales in south and north", dataset)

        assert filters == {"zone": "north"}
        tie = trace.find("filter", "filter_tie")
        assert tie.details["chosen"] == "north"
        assert tie.details["others"] == ["south"]


class TestResolve:
    def test_full_query(self, resolver, dataset):
        entities = resolver.resolve("average sales by region for alpha", dataset)

        assert entities.metric == "sales"
        assert entities.dimension == "region"
        assert entities.aggregation == Aggregation.AVG
        assert entities.chart_type is None
        assert entities.filters == {"customer": "alpha"}

    def test_chart_type_detected(self, resolver, dataset):
        entities = resolver.resolve("revenue trend by date", dataset)

        assert entities.chart_type == ChartType.LINE
        assert entities.dimension == "order_date"
        assert entities.metric is None

    def test_shared_column_becomes_count_by_dimension(self, resolver, dataset, trace):
        entities = resolver.resolve("sales by region", dataset)

        assert entities.metric is None
        assert entities.dimension == "region"
        assert entities.aggregation == Aggregation.COUNT
        assert trace.find("conflict", "prefer_dimension").details == {"column": "region"}

    def test_list_counts(self, resolver, dataset):
        entities = resolver.resolve("list customers", dataset)

        assert entities.dimension == "customer"
        assert entities.metric is None
        assert entities.aggregation == Aggregation.COUNT
