"""
Dataset API Routes

Endpoints for CSV upload and data source management.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from api.deps import get_local_store
from api.schemas.responses import ColumnInfo, DatasetListResponse, DatasetResponse
from config import get_settings
from core.dataset import Dataset
from core.logging_config import api_logger as logger
from store.local import LocalSource, LocalStore


router = APIRouter()


def _to_response(source: LocalSource, dataset: Optional[Dataset] = None, message: str = "") -> DatasetResponse:
    if dataset is not None:
        columns = [ColumnInfo(name=c.name, type=c.type.value) for c in dataset.columns]
    else:
        columns = [ColumnInfo(name=name, type="string") for name in source.columns]
    return DatasetResponse(
        data_source_id=source.data_source_id,
        name=source.name,
        file_id=source.file_id,
        file_name=source.file_name,
        row_count=source.row_count,
        columns=columns,
        created_at=source.created_at,
        message=message,
    )


def _typed_sample(store: LocalStore, source: LocalSource) -> Dataset:
    limit = get_settings().engine.row_limit
    return Dataset.from_records(store.parser.load_records(source.file_id, limit))


@router.post("/datasets", response_model=DatasetResponse)
async def upload_dataset(
    file: UploadFile = File(...),
    name: Optional[str] = Form(default=None),
    store: LocalStore = Depends(get_local_store),
) -> DatasetResponse:
    """
    Upload a CSV file and register it as a data source.

    The data source name defaults to the file name without extension.
    """
    settings = get_settings()

    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=400,
            detail="Only CSV files are supported"
        )

    content = await file.read()

    file_size_mb = len(content) / (1024 * 1024)
    if file_size_mb > settings.max_file_size_mb:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_file_size_mb}MB"
        )

    try:
        df = store.parser.parse_bytes(content)
        source = store.register(
            name=name or file.filename.rsplit(".", 1)[0],
            file_name=file.filename,
            df=df,
        )
        dataset = _typed_sample(store, source)
    except Exception as e:
        logger.exception(f"Error processing upload {file.filename}: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Error processing file: {str(e)}"
        )

    return _to_response(
        source,
        dataset,
        message=f"Successfully uploaded and processed {file.filename}",
    )


@router.get("/datasets", response_model=DatasetListResponse)
async def list_datasets(store: LocalStore = Depends(get_local_store)) -> DatasetListResponse:
    """List all registered data sources."""
    datasets = [_to_response(source) for source in store.list_sources()]
    return DatasetListResponse(datasets=datasets, count=len(datasets))


@router.get("/datasets/{data_source_id}", response_model=DatasetResponse)
async def get_dataset(
    data_source_id: str,
    store: LocalStore = Depends(get_local_store),
) -> DatasetResponse:
    """Get a data source with its inferred column types."""
    source = store.get(data_source_id)
    if source is None:
        raise HTTPException(status_code=404, detail="Data source not found")

    try:
        dataset = _typed_sample(store, source)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Data source file not found")
    return _to_response(source, dataset)


@router.delete("/datasets/{data_source_id}")
async def delete_dataset(
    data_source_id: str,
    request: Request,
    store: LocalStore = Depends(get_local_store),
) -> dict:
    """Delete a data source and its data."""
    if not store.remove(data_source_id):
        raise HTTPException(status_code=404, detail="Data source not found")

    cache = request.app.state.dataset_cache
    if cache is not None:
        cache.delete(data_source_id)

    return {"message": f"Data source {data_source_id} deleted successfully"}
