"""
CSV Parser

Polars-based CSV parsing with automatic encoding detection,
and parquet persistence of uploaded datasets keyed by file id.
"""

import hashlib
import io
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
from uuid import uuid4

import chardet
import polars as pl

from config import get_settings
from core.dataset import DATE_FORMATS, Row


class CSVParser:
    """CSV parser and parquet file store."""

    # Column-name fragments that mark a string column as a date candidate
    DATE_NAME_PATTERNS = ["date", "time", "datetime", "timestamp", "created", "updated"]

    def __init__(self, upload_dir: Optional[Union[str, Path]] = None):
        self.upload_dir = Path(upload_dir or get_settings().upload_dir)

    def detect_encoding(self, data: bytes) -> str:
        """Detect encoding from the first 100KB of raw bytes."""
        result = chardet.detect(data[:102400])
        encoding = result.get("encoding", "utf-8")
        return encoding or "utf-8"

    def parse_bytes(
        self,
        data: bytes,
        infer_schema_length: int = 10000,
    ) -> pl.DataFrame:
        """
        Parse CSV from bytes.

        Args:
            data: Raw CSV bytes
            infer_schema_length: Number of rows for schema inference

        Returns:
            Polars DataFrame
        """
        encoding = self.detect_encoding(data)

        try:
            text = data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            # latin-1 accepts any byte
            text = data.decode("latin-1")

        df = pl.read_csv(
            io.StringIO(text),
            infer_schema_length=infer_schema_length,
            try_parse_dates=True,
            ignore_errors=True,
            truncate_ragged_lines=True,
        )

        return self._parse_date_strings(df)

    def _parse_date_strings(self, df: pl.DataFrame) -> pl.DataFrame:
        """Convert string columns with date-like names to datetimes."""
        for col in df.columns:
            if df[col].dtype not in (pl.Utf8, pl.String):
                continue
            if not any(pattern in col.lower() for pattern in self.DATE_NAME_PATTERNS):
                continue

            for fmt in DATE_FORMATS:
                try:
                    parsed = df[col].str.to_datetime(fmt, strict=False)
                except pl.exceptions.PolarsError:
                    continue
                if parsed.null_count() < len(df) * 0.5:
                    df = df.with_columns(parsed.alias(col))
                    break

        return df

    def _path(self, file_id: str) -> Path:
        return self.upload_dir / f"{file_id}.parquet"

    def save_dataframe(self, df: pl.DataFrame, file_id: str) -> Path:
        """Persist a parsed dataset as zstd-compressed parquet."""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        file_path = self._path(file_id)
        df.write_parquet(file_path, compression="zstd")
        return file_path

    def load_dataframe(self, file_id: str) -> pl.DataFrame:
        file_path = self._path(file_id)
        if not file_path.exists():
            raise FileNotFoundError(f"File {file_id} not found")
        return pl.read_parquet(file_path)

    def load_records(self, file_id: str, limit: int) -> list[Row]:
        """Load at most `limit` rows of a stored file as dicts."""
        return self.load_dataframe(file_id).head(limit).to_dicts()

    def delete(self, file_id: str) -> bool:
        file_path = self._path(file_id)
        if file_path.exists():
            file_path.unlink()
            return True
        return False

    def generate_file_id(self, filename: str) -> str:
        """Unique id from the filename and the current timestamp."""
        timestamp = datetime.now().isoformat()
        content = f"{filename}_{timestamp}_{uuid4().hex}"
        return hashlib.sha256(content.encode()).hexdigest()[:16]
