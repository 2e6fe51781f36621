"""
API Dependencies

Per-request access to the application's store and a freshly built engine.
"""

from fastapi import HTTPException, Request

from config import get_settings
from engine.analyzer import AnalyticalEngine
from store.base import TabularStore
from store.fetcher import DatasetFetcher
from store.local import LocalStore


def get_store(request: Request) -> TabularStore:
    return request.app.state.store


def get_local_store(request: Request) -> LocalStore:
    """Store accepting uploads; only the local backend does."""
    store = request.app.state.store
    if not isinstance(store, LocalStore):
        raise HTTPException(
            status_code=400,
            detail="Dataset management requires the local store backend"
        )
    return store


def get_fetcher(request: Request) -> DatasetFetcher:
    settings = get_settings()
    return DatasetFetcher(
        request.app.state.store,
        row_limit=settings.engine.row_limit,
        cache=request.app.state.dataset_cache,
    )


def get_engine(request: Request) -> AnalyticalEngine:
    """A new engine per request; it holds no state between calls."""
    return AnalyticalEngine(get_fetcher(request), settings=get_settings().engine)
