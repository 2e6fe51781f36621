"""
Dataset Fetcher

Resolves a data source id to a concrete file and loads its rows as a
typed Dataset. Every failure degrades to an empty result.
"""

from dataclasses import dataclass
from typing import Optional

from core.cache import TTLCache
from core.dataset import Dataset
from core.logging_config import store_logger as logger
from store.base import TabularStore, file_name_candidates


@dataclass
class FetchResult:
    """Rows of a data source and the file they came from."""

    dataset: Dataset
    file_id: Optional[str] = None

    @classmethod
    def empty(cls) -> "FetchResult":
        return cls(dataset=Dataset.empty(), file_id=None)

    @property
    def is_empty(self) -> bool:
        return len(self.dataset) == 0


class DatasetFetcher:
    """Fetches datasets from a TabularStore with name-matching fallbacks."""

    def __init__(
        self,
        store: TabularStore,
        row_limit: int = 2000,
        cache: Optional[TTLCache] = None,
    ):
        self.store = store
        self.row_limit = row_limit
        self.cache = cache

    async def fetch(self, data_source_id: str) -> FetchResult:
        if self.cache is not None:
            cached = self.cache.get(data_source_id)
            if cached is not None:
                logger.debug(f"Dataset cache hit: {data_source_id}")
                return cached

        try:
            result = await self._fetch(data_source_id)
        except Exception as e:
            logger.exception(f"Error fetching data for {data_source_id}: {e}")
            return FetchResult.empty()

        if self.cache is not None and not result.is_empty:
            self.cache.set(data_source_id, result)
        return result

    async def _fetch(self, data_source_id: str) -> FetchResult:
        name = await self.store.get_source_name(data_source_id)
        if not name:
            logger.warning(f"Data source {data_source_id} not found or has no name")
            return FetchResult.empty()

        file_id = await self.resolve_file_id(name)
        if file_id is None:
            logger.warning(f"Could not find any matching uploaded file for source: {name}")
            return FetchResult.empty()

        records = await self.store.fetch_rows(file_id, self.row_limit)
        logger.info(f"Fetched {len(records)} rows for {name} (file {file_id})")
        return FetchResult(
            dataset=Dataset.from_records(records[:self.row_limit]),
            file_id=file_id,
        )

    async def resolve_file_id(self, name: str) -> Optional[str]:
        """Try each candidate file name in turn, then a case-insensitive match."""
        for candidate in file_name_candidates(name):
            file_id = await self.store.find_file(candidate)
            if file_id:
                logger.debug(f"Found file with strategy: {candidate}")
                return file_id

        logger.debug(f"Retrying case-insensitive: {name}")
        return await self.store.find_file_case_insensitive(name)
