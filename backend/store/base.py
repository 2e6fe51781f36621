"""
Tabular Store Contract

Abstract async access to the remote table store that holds uploaded
datasets: data sources, the files registered for them, and row records.
"""

from abc import ABC, abstractmethod
from typing import Optional

from core.dataset import Row


class StoreError(Exception):
    """Transport or protocol failure talking to a store."""


class TabularStore(ABC):
    """Read-only view of a tabular data store."""

    @abstractmethod
    async def get_source_name(self, data_source_id: str) -> Optional[str]:
        """Display name of a data source, None if unknown."""

    @abstractmethod
    async def find_file(self, file_name: str) -> Optional[str]:
        """Id of the file with exactly this name."""

    @abstractmethod
    async def find_file_case_insensitive(self, file_name: str) -> Optional[str]:
        """Id of a file whose name matches ignoring case."""

    @abstractmethod
    async def fetch_rows(self, file_id: str, limit: int) -> list[Row]:
        """At most `limit` row records of a file."""

    async def close(self) -> None:
        pass


def file_name_candidates(name: str) -> list[str]:
    """
    File names to try, in order, for a data source name.

    Exact name, .csv suffixed, spaces to underscores (plain and .csv),
    spaces to hyphens (plain and .csv). Duplicates are dropped.
    """
    underscored = name.replace(" ", "_")
    hyphenated = name.replace(" ", "-")
    candidates = [
        name,
        name if name.endswith(".csv") else f"{name}.csv",
        underscored,
        f"{underscored}.csv",
        hyphenated,
        f"{hyphenated}.csv",
    ]
    return list(dict.fromkeys(candidates))
