"""
Analytical Query Engine - Main Application

FastAPI server answering natural-language analytical questions over
uploaded or remotely stored tabular datasets.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from api.routes import analyze, charts, datasets
from core.cache import build_dataset_cache
from core.logging_config import api_logger as logger
from store.base import TabularStore
from store.local import LocalStore
from store.postgrest import PostgrestStore


def build_store() -> TabularStore:
    """Store backend selected by STORE_BACKEND."""
    settings = get_settings()
    if settings.store.backend == "postgrest":
        return PostgrestStore(settings.store)
    return LocalStore()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    os.makedirs(settings.upload_dir, exist_ok=True)
    logger.info(f"{settings.app_name} v{settings.app_version} starting...")
    logger.info(f"Store backend: {type(app.state.store).__name__}")
    logger.info(f"Upload directory: {settings.upload_dir}")

    yield

    # Shutdown
    await app.state.store.close()
    logger.info("Shutting down...")


def create_app(store: Optional[TabularStore] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Natural-language analytical queries with chart recommendations",
        lifespan=lifespan,
    )
    app.state.store = store or build_store()
    app.state.dataset_cache = build_dataset_cache()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(datasets.router, prefix="/api/v1", tags=["Datasets"])
    app.include_router(analyze.router, prefix="/api/v1", tags=["Analyze"])
    app.include_router(charts.router, prefix="/api/v1", tags=["Charts"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "store": type(app.state.store).__name__,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
