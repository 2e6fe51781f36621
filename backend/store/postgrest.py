"""
PostgREST Store

Async client for a PostgREST-style table API (e.g. a Supabase project).
Tables: data sources, uploaded files and per-file row records.
"""

from typing import Any, Optional

import httpx

from config import StoreSettings, get_settings
from core.dataset import Row
from core.logging_config import store_logger as logger
from store.base import StoreError, TabularStore


class PostgrestStore(TabularStore):
    """
    Read-only PostgREST client.

    Features:
    - Lazily created, reusable connection pool
    - apikey / bearer authentication
    - Transport errors surfaced as StoreError
    """

    def __init__(
        self,
        settings: Optional[StoreSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings().store
        self._client = client

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.settings.api_key:
                headers["apikey"] = self.settings.api_key
                headers["Authorization"] = f"Bearer {self.settings.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.settings.timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _select(self, table: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        client = await self.get_client()
        try:
            response = await client.get(f"/rest/v1/{table}", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise StoreError(f"Request to {table} failed: {e}") from e
        except ValueError as e:
            raise StoreError(f"Invalid JSON from {table}: {e}") from e

        if not isinstance(data, list):
            raise StoreError(f"Unexpected payload from {table}: {type(data).__name__}")
        return data

    async def get_source_name(self, data_source_id: str) -> Optional[str]:
        rows = await self._select(
            self.settings.data_sources_table,
            {"select": "*", "id": f"eq.{data_source_id}", "limit": 1},
        )
        if not rows:
            return None
        return rows[0].get("name")

    async def find_file(self, file_name: str) -> Optional[str]:
        rows = await self._select(
            self.settings.files_table,
            {"select": "id", "file_name": f"eq.{file_name}", "limit": 1},
        )
        return rows[0]["id"] if rows else None

    async def find_file_case_insensitive(self, file_name: str) -> Optional[str]:
        rows = await self._select(
            self.settings.files_table,
            {"select": "id", "file_name": f"ilike.{file_name}", "limit": 1},
        )
        return rows[0]["id"] if rows else None

    async def fetch_rows(self, file_id: str, limit: int) -> list[Row]:
        rows = await self._select(
            self.settings.records_table,
            {"select": "row_data", "file_id": f"eq.{file_id}", "limit": limit},
        )
        logger.debug(f"Fetched {len(rows)} records for file {file_id}")
        return [r["row_data"] for r in rows if isinstance(r.get("row_data"), dict)]
