"""Data exports and the cleanup of expired export files.

Exports are written with polars, uploaded to blob storage and recorded in
``export_history`` with an expiry date. The daily cleanup job deletes the
blobs of expired exports and then their history rows.
"""

import io
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

import polars as pl

from ..config import get_settings
from ..db import Repository
from ..models import ExportFormat, ExportRecord, Transaction

logger = logging.getLogger(__name__)

TRANSACTIONS_EXPORT_TYPE = "TRANSACTIONS"

TRANSACTION_EXPORT_SCHEMA: dict[str, Any] = {
    "date": pl.Date,
    "payee": pl.String,
    "amount": pl.Float64,
    "account_id": pl.String,
    "category_id": pl.String,
    "notes": pl.String,
    "tags": pl.List(pl.String),
    "import_source": pl.String,
}

_EXTENSIONS = {
    ExportFormat.CSV: "csv",
    ExportFormat.JSON: "json",
    ExportFormat.PARQUET: "parquet",
}


class BlobStore(Protocol):
    """Object storage holding export files."""

    def put(self, key: str, data: bytes) -> str:
        """Store ``data`` under ``key`` and return the stored key."""
        ...

    def delete(self, key: str) -> None:
        """Delete the blob stored under ``key``."""
        ...


class LocalBlobStore:
    """Blob storage backed by a local directory."""

    def __init__(self, root: Path | None = None):
        self.root = Path(root or get_settings().exports.blob_path).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise ValueError(f"Blob key escapes storage root: {key}")
        return path

    def put(self, key: str, data: bytes) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    def delete(self, key: str) -> None:
        self._path(key).unlink()

    def exists(self, key: str) -> bool:
        return self._path(key).exists()


@dataclass
class CleanupResults:
    """Counts reported by an export cleanup run."""

    exports_deleted: int = 0
    blobs_deleted: int = 0
    bytes_freed: int = 0


def transactions_frame(transactions: list[Transaction]) -> pl.DataFrame:
    """Tabulate transactions for export."""
    rows = [
        {
            "date": t.date,
            "payee": t.payee,
            "amount": float(t.amount),
            "account_id": t.account_id,
            "category_id": t.category_id,
            "notes": t.notes,
            "tags": list(t.tags),
            "import_source": t.import_source.value if t.import_source else None,
        }
        for t in transactions
    ]
    return pl.DataFrame(rows, schema=TRANSACTION_EXPORT_SCHEMA)


def serialize_frame(df: pl.DataFrame, fmt: ExportFormat) -> bytes:
    """Encode a frame in the requested export format."""
    buffer = io.BytesIO()
    if fmt == ExportFormat.CSV:
        # CSV has no list type
        df.with_columns(pl.col("tags").list.join(", ")).write_csv(buffer)
    elif fmt == ExportFormat.JSON:
        df.write_json(buffer)
    elif fmt == ExportFormat.PARQUET:
        df.write_parquet(buffer)
    else:
        raise ValueError(f"Unsupported export format: {fmt}")
    return buffer.getvalue()


def create_transactions_export(
    repo: Repository,
    store: BlobStore,
    user_id: str,
    fmt: ExportFormat,
    now: datetime | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> ExportRecord:
    """Export a user's transactions and record the export.

    Args:
        repo: Repository bound to a writable connection
        store: Blob storage the file is uploaded to
        user_id: Whose transactions to export
        fmt: CSV, JSON or PARQUET
        now: Export time, defaults to the current time
        start_date: Earliest transaction date to include
        end_date: Latest transaction date to include

    Returns:
        ExportRecord: The recorded export; ``blob_key`` is None if the upload failed
    """
    now = now or datetime.now()
    transactions = [
        t
        for t in repo.list_user_transactions(user_id)
        if (start_date is None or t.date >= start_date)
        and (end_date is None or t.date <= end_date)
    ]
    data = serialize_frame(transactions_frame(transactions), fmt)

    key = f"exports/{user_id}/transactions-{now:%Y-%m-%d-%H-%M-%S}.{_EXTENSIONS[fmt]}"
    blob_key: str | None
    try:
        blob_key = store.put(key, data)
        logger.info(f"Export uploaded to blob storage: {blob_key}")
    except OSError as e:
        logger.error(f"Blob upload failed, export will not be cached: {e}")
        blob_key = None

    retention = timedelta(days=get_settings().exports.retention_days)
    return repo.create_export(
        user_id=user_id,
        export_type=TRANSACTIONS_EXPORT_TYPE,
        fmt=fmt,
        data_type="transactions",
        record_count=len(transactions),
        file_size=len(data),
        blob_key=blob_key,
        created_at=now,
        expires_at=now + retention,
    )


def cleanup_expired_exports(
    repo: Repository, store: BlobStore, now: datetime | None = None
) -> CleanupResults:
    """Delete expired export files and their history rows.

    Blob deletion failures are logged and tolerated; the history row is
    removed either way.

    Args:
        repo: Repository bound to a writable connection
        store: Blob storage holding the export files
        now: Reference time, defaults to the current time

    Returns:
        CleanupResults: Rows deleted, blobs deleted and bytes freed
    """
    now = now or datetime.now()
    expired = repo.list_expired_exports(now)
    logger.info(f"Found {len(expired)} expired exports to clean up")

    results = CleanupResults()
    for export in expired:
        if not export.blob_key:
            continue
        try:
            store.delete(export.blob_key)
        except Exception as e:
            logger.error(f"Failed to delete blob {export.blob_key}: {e}")
            continue
        results.blobs_deleted += 1
        results.bytes_freed += export.file_size
        logger.debug(f"Deleted blob: {export.blob_key}")

    results.exports_deleted = repo.delete_exports([e.id for e in expired])

    logger.info(
        f"Cleanup complete: {results.exports_deleted} records deleted, "
        f"{results.blobs_deleted} blobs deleted, {results.bytes_freed} bytes freed"
    )
    return results
