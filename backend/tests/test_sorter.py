"""
Test Sorter

Unit tests for chronological and value ordering of aggregated rows.
"""

from engine.models import AggregationRow, ChartType
from engine.sorter import compare_chronological, is_time_dimension, sort_rows


class TestSorter:
    def test_time_dimension(self):
        assert is_time_dimension("order_date", None)
        assert is_time_dimension("Year", ChartType.BAR)
        assert is_time_dimension("region", ChartType.LINE)
        assert not is_time_dimension("region", ChartType.BAR)

    def test_value_descending(self):
        rows = [AggregationRow("a", 1.0), AggregationRow("b", 3.0), AggregationRow("c", 2.0)]
        assert [r.dimension_value for r in sort_rows(rows, False)] == ["b", "c", "a"]

    def test_value_ties_keep_order(self):
        rows = [AggregationRow("a", 1.0), AggregationRow("b", 1.0)]
        assert [r.dimension_value for r in sort_rows(rows, False)] == ["a", "b"]

    def test_chronological(self):
        rows = [
            AggregationRow("2024-03-01", 1.0),
            AggregationRow("2023-12-01", 5.0),
            AggregationRow("2024-01-15", 2.0),
        ]
        ordered = [r.dimension_value for r in sort_rows(rows, True)]
        assert ordered == ["2023-12-01", "2024-01-15", "2024-03-01"]

    def test_chronological_years(self):
        rows = [AggregationRow("2022", 1.0), AggregationRow("2020", 1.0), AggregationRow("2021", 1.0)]
        assert [r.dimension_value for r in sort_rows(rows, True)] == ["2020", "2021", "2022"]

    def test_unparseable_dates_compare_as_text(self):
        assert compare_chronological("Q2", "Q1") == 1
        assert compare_chronological("Q1", "Q1") == 0
