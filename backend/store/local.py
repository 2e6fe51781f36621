"""
Local Store

In-process store for datasets uploaded to this service. Files are kept
as parquet by the CSV parser; the registry maps data sources to file names.
"""

from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Optional
from uuid import uuid4

import polars as pl

from core.csv_parser import CSVParser
from core.dataset import Row
from core.logging_config import data_logger as logger
from store.base import TabularStore


@dataclass
class LocalSource:
    """A registered data source and its backing file."""

    data_source_id: str
    name: str
    file_id: str
    file_name: str
    row_count: int
    columns: list[str]
    created_at: datetime = field(default_factory=datetime.now)


class LocalStore(TabularStore):
    """TabularStore over uploaded CSV files."""

    def __init__(self, parser: Optional[CSVParser] = None):
        self.parser = parser or CSVParser()
        self._sources: dict[str, LocalSource] = {}
        self._files: dict[str, str] = {}  # file name -> file id
        self._lock = Lock()

    def register(self, name: str, file_name: str, df: pl.DataFrame) -> LocalSource:
        """
        Persist a parsed file and register a data source for it.

        Sources are fetched by name, so a name already in use gets a
        numeric suffix ("sales (2)").
        """
        file_id = self.parser.generate_file_id(file_name)
        self.parser.save_dataframe(df, file_id)

        with self._lock:
            source = LocalSource(
                data_source_id=str(uuid4()),
                name=self._unique_name(name),
                file_id=file_id,
                file_name=file_name,
                row_count=len(df),
                columns=df.columns,
            )
            self._sources[source.data_source_id] = source
            self._files[file_name] = file_id

        logger.info(
            f"Registered data source {source.data_source_id} "
            f"'{source.name}' ({file_name}, {len(df)} rows)"
        )
        return source

    def _unique_name(self, name: str) -> str:
        taken = {s.name for s in self._sources.values()}
        candidate, n = name, 1
        while candidate in taken:
            n += 1
            candidate = f"{name} ({n})"
        return candidate

    def get(self, data_source_id: str) -> Optional[LocalSource]:
        with self._lock:
            return self._sources.get(data_source_id)

    def list_sources(self) -> list[LocalSource]:
        with self._lock:
            return list(self._sources.values())

    def remove(self, data_source_id: str) -> bool:
        with self._lock:
            source = self._sources.pop(data_source_id, None)
            if source is None:
                return False
            if self._files.get(source.file_name) == source.file_id:
                del self._files[source.file_name]
        self.parser.delete(source.file_id)
        return True

    async def get_source_name(self, data_source_id: str) -> Optional[str]:
        source = self.get(data_source_id)
        return source.name if source else None

    async def find_file(self, file_name: str) -> Optional[str]:
        """File of the source so named, else the file last uploaded under this name."""
        with self._lock:
            for source in self._sources.values():
                if source.name == file_name:
                    return source.file_id
            return self._files.get(file_name)

    async def find_file_case_insensitive(self, file_name: str) -> Optional[str]:
        target = file_name.lower()
        with self._lock:
            for name, file_id in self._files.items():
                if name.lower() == target:
                    return file_id
        return None

    async def fetch_rows(self, file_id: str, limit: int) -> list[Row]:
        return self.parser.load_records(file_id, limit)
