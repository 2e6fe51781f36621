"""
Typed Dataset

In-memory row set with per-column types inferred once at load time.
All numeric coercion used by the query pipeline lives here.
"""

import math
import numbers
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterator, Optional


Row = dict[str, Any]

_NON_NUMERIC_CHARS = re.compile(r"[^0-9.\-]+")
_NUMBER_PREFIX = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")
_PLAIN_NUMBER = re.compile(r"\s*[-+]?\d+(?:\.\d+)?\s*")
_YEAR_ONLY = re.compile(r"\d{4}")

# Formats tried after ISO parsing fails
DATE_FORMATS = [
    "%m/%d/%Y",       # 01/15/2024
    "%d/%m/%Y",       # 15/01/2024
    "%Y/%m/%d",       # 2024/01/15
    "%m-%d-%Y",       # 01-15-2024
    "%d-%m-%Y",       # 15-01-2024
    "%Y-%m",          # 2024-01
    "%B %d, %Y",      # January 15, 2024
    "%b %d, %Y",      # Jan 15, 2024
    "%d %B %Y",       # 15 January 2024
    "%d %b %Y",       # 15 Jan 2024
    "%B %Y",          # January 2024
    "%b %Y",          # Jan 2024
]


class ColumnType(str, Enum):
    """Inferred column types."""

    NUMERIC = "numeric"
    STRING = "string"
    DATE = "date"


def parse_number(value: Any) -> Optional[float]:
    """
    Lenient numeric parse.

    Strings have every character except digits, '.' and '-' removed and
    the longest leading number is taken ("$1,200.50" -> 1200.5).
    Returns None when nothing numeric is found.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, str):
        match = _NUMBER_PREFIX.match(_NON_NUMERIC_CHARS.sub("", value))
        return float(match.group()) if match else None
    return None


def to_number(value: Any) -> float:
    """Coerce to float, unparseable values become 0."""
    number = parse_number(value)
    return 0.0 if number is None else number


def parse_date(value: Any) -> Optional[datetime]:
    """Parse dates, datetimes, years and common date strings."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        if float(value).is_integer() and 1000 <= value <= 9999:
            return datetime(int(value), 1, 1)
        return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if _YEAR_ONLY.fullmatch(text):
        return datetime(int(text), 1, 1)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_value(value: Any) -> str:
    """Stringify a cell the way it is shown to users."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_key(value: Any) -> str:
    """Group key for a dimension cell; null and empty become 'Unknown'."""
    if value is None or value == "":
        return "Unknown"
    return format_value(value)


def is_missing(value: Any) -> bool:
    return value is None or value == ""


def infer_column_type(sample: Any) -> ColumnType:
    """Classify a column from its first non-null sample."""
    if isinstance(sample, (date, datetime)):
        return ColumnType.DATE
    if isinstance(sample, bool):
        return ColumnType.STRING
    if isinstance(sample, numbers.Real):
        return ColumnType.NUMERIC
    if isinstance(sample, str):
        if not _PLAIN_NUMBER.fullmatch(sample) and parse_date(sample) is not None:
            return ColumnType.DATE
        if parse_number(sample) is not None:
            return ColumnType.NUMERIC
    return ColumnType.STRING


@dataclass(frozen=True)
class Column:
    """A dataset column and its inferred type."""

    name: str
    type: ColumnType


class Dataset:
    """
    Ordered row set with a fixed column list.

    The column set comes from the first row and is assumed uniform;
    column types are computed once and shared by filtered views.
    """

    def __init__(self, rows: list[Row], columns: list[Column]):
        self.rows = rows
        self.columns = columns
        self._types = {c.name: c.type for c in columns}

    @classmethod
    def from_records(cls, records: list[Row]) -> "Dataset":
        rows = list(records)
        if not rows:
            return cls([], [])

        columns = []
        for name in rows[0].keys():
            sample = next(
                (row.get(name) for row in rows if row.get(name) is not None),
                None,
            )
            columns.append(Column(name=name, type=infer_column_type(sample)))
        return cls(rows, columns)

    @classmethod
    def empty(cls) -> "Dataset":
        return cls([], [])

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column_type(self, name: str) -> Optional[ColumnType]:
        return self._types.get(name)

    def is_numeric(self, name: str) -> bool:
        return self._types.get(name) == ColumnType.NUMERIC

    def columns_of_type(self, column_type: ColumnType) -> list[str]:
        return [c.name for c in self.columns if c.type == column_type]

    def values(self, name: str) -> list[Any]:
        return [row.get(name) for row in self.rows]

    def filter(self, predicate: Callable[[Row], bool]) -> "Dataset":
        """New dataset with the rows matching predicate, same column types."""
        return Dataset([row for row in self.rows if predicate(row)], self.columns)

    def schema(self) -> dict[str, str]:
        return {c.name: c.type.value for c in self.columns}

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)
