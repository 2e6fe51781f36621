"""
Test CSV Parser

Unit tests for parsing uploaded CSV files and their parquet storage.
"""

import polars as pl
import pytest

from core.csv_parser import CSVParser
from core.dataset import ColumnType, Dataset


@pytest.fixture
def parser(tmp_path):
    return CSVParser(upload_dir=tmp_path)


@pytest.fixture
def orders_csv():
    return b"""order_id,customer,region,sales,order_date
1001,Acme Corp,East,1200.50,2024-01-03
1002,Globex,West,310.00,2024-01-09
1003,Initech,East,87.25,2024-02-14
1004,Acme Corp,North,455.00,2024-02-20
1005,Umbrella,West,990.10,2024-03-01"""


class TestParsing:
    def test_columns_and_rows(self, parser, orders_csv):
        df = parser.parse_bytes(orders_csv)

        assert df.columns == ["order_id", "customer", "region", "sales", "order_date"]
        assert df.height == 5
        assert df["sales"].dtype in (pl.Float64, pl.Float32)
        assert df["customer"].dtype in (pl.Utf8, pl.String)
        assert df["order_date"].dtype in (pl.Date, pl.Datetime)

    def test_detects_plain_text_encoding(self, parser, orders_csv):
        assert parser.detect_encoding(orders_csv).lower() in ("ascii", "utf-8", "utf-8-sig")

    def test_latin1_upload(self, parser):
        """Bytes that are not valid UTF-8 still parse."""
        data = "city,sales\nMünchen,10\nKöln,20\n".encode("latin-1")

        df = parser.parse_bytes(data)

        assert df["sales"].sum() == 30

    def test_us_dates_in_date_named_column(self, parser):
        df = parser.parse_bytes(b"order_date,sales\n01/15/2024,10\n02/20/2024,20")

        assert df["order_date"].dtype in (pl.Date, pl.Datetime)
        first = df["order_date"][0]
        assert (first.year, first.month, first.day) == (2024, 1, 15)

    def test_other_string_columns_untouched(self, parser):
        df = parser.parse_bytes(b"segment,sales\n01/15/2024,10\nRetail,20")
        assert df["segment"].dtype in (pl.Utf8, pl.String)

    def test_missing_cells_are_null(self, parser):
        df = parser.parse_bytes(b"region,sales\nEast,\n,20\nWest,5")

        assert df["region"].null_count() == 1
        assert df["sales"].null_count() == 1

    def test_quoted_values(self, parser):
        df = parser.parse_bytes(b'customer,note\n"Doe, Jane","said ""hi"""\nAcme,none')
        assert df["customer"].to_list() == ["Doe, Jane", "Acme"]


class TestStorage:
    def test_save_and_load(self, parser, orders_csv, tmp_path):
        df = parser.parse_bytes(orders_csv)

        path = parser.save_dataframe(df, "orders")

        assert path.parent == tmp_path
        assert parser.load_dataframe("orders").equals(df)

    def test_load_records_limit(self, parser, orders_csv):
        parser.save_dataframe(parser.parse_bytes(orders_csv), "orders")

        records = parser.load_records("orders", 2)

        assert [r["customer"] for r in records] == ["Acme Corp", "Globex"]

    def test_records_load_as_typed_dataset(self, parser, orders_csv):
        parser.save_dataframe(parser.parse_bytes(orders_csv), "orders")

        dataset = Dataset.from_records(parser.load_records("orders", 100))

        assert dataset.schema() == {
            "order_id": "numeric",
            "customer": "string",
            "region": "string",
            "sales": "numeric",
            "order_date": "date",
        }
        assert dataset.column_type("order_date") == ColumnType.DATE

    def test_missing_file(self, parser):
        with pytest.raises(FileNotFoundError):
            parser.load_records("nope", 10)

    def test_delete(self, parser, orders_csv):
        parser.save_dataframe(parser.parse_bytes(orders_csv), "orders")

        assert parser.delete("orders") is True
        assert parser.delete("orders") is False

    def test_file_ids_are_unique(self, parser):
        first, second = parser.generate_file_id("a.csv"), parser.generate_file_id("a.csv")

        assert first != second
        assert len(first) == 16
