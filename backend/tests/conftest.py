"""Shared fixtures: an in-memory TabularStore."""

from typing import Optional

import pytest

from store.base import StoreError, TabularStore


class MemoryStore(TabularStore):
    """TabularStore over plain dicts, recording every file-name lookup."""

    def __init__(
        self,
        sources: dict[str, str],
        files: dict[str, str],
        rows: dict[str, list[dict]],
        fail: bool = False,
    ):
        self.sources = sources
        self.files = files
        self.rows = rows
        self.fail = fail
        self.lookups: list[str] = []
        self.closed = False

    async def get_source_name(self, data_source_id: str) -> Optional[str]:
        if self.fail:
            raise StoreError("store unavailable")
        return self.sources.get(data_source_id)

    async def find_file(self, file_name: str) -> Optional[str]:
        self.lookups.append(file_name)
        return self.files.get(file_name)

    async def find_file_case_insensitive(self, file_name: str) -> Optional[str]:
        self.lookups.append(f"ilike:{file_name}")
        for name, file_id in self.files.items():
            if name.lower() == file_name.lower():
                return file_id
        return None

    async def fetch_rows(self, file_id: str, limit: int) -> list[dict]:
        return self.rows.get(file_id, [])[:limit]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def memory_store():
    """Factory: memory_store(rows, name=...) registers one data source 'ds1'."""

    def make(rows: list[dict], name: str = "Sales Data", file_name: Optional[str] = None, **kwargs):
        return MemoryStore(
            sources={"ds1": name},
            files={file_name or f"{name}.csv": "file-1"},
            rows={"file-1": rows},
            **kwargs,
        )

    return make
