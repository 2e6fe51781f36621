"""Row filtering by detected categorical values."""

from core.dataset import Dataset, Row, format_value, is_missing


def row_matches(row: Row, filters: dict[str, str]) -> bool:
    """Every filter value must be a case-insensitive substring of its column."""
    for column, value in filters.items():
        cell = row.get(column)
        if is_missing(cell) or value.lower() not in format_value(cell).lower():
            return False
    return True


def apply_filters(dataset: Dataset, filters: dict[str, str]) -> Dataset:
    if not filters:
        return dataset
    return dataset.filter(lambda row: row_matches(row, filters))
