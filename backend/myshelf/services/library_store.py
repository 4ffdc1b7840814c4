"""
Library Store Module

Durable storage of one StorageData blob per namespace key. Each blob is
written as a JSON envelope ``{"version": n, "data": {...}}`` in a SQLite
table. Records from the older flat JSON file store are migrated on first
load.

Every read path goes through the sanitizer; stored data is never trusted.
There is no locking: save() is a read-modify-write, and two processes
writing the same key end up with whichever write landed last.
"""

import asyncio
import json
import logging
import re
import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from myshelf.models.library_models import (
    CURRENT_STORAGE_VERSION,
    PersistedRecord,
    RecordFormat,
    StorageData,
)

from .base_database_service import DEFAULT_DB_PATH, BaseDatabaseService
from .errors import StorageError, StorageFormatError, StorageQuotaExceededError
from .migration_service import MigrationService, default_storage_dict
from .sanitizer import SanitizeReport, sanitize_with_report

# Configure logger for this module
logger = logging.getLogger(__name__)

GUEST_STORAGE_KEY = "my-shelf-data"
DEFAULT_LEGACY_DIR = "data/legacy"
DEFAULT_MAX_RECORD_BYTES = 25 * 1024 * 1024


def storage_key_for(user_id: str | None) -> str:
    """
    Namespace key for a user; guests share a single namespace.
    """
    if user_id is None or not str(user_id).strip():
        return GUEST_STORAGE_KEY
    return f"{GUEST_STORAGE_KEY}:{str(user_id).strip()}"


def _to_wire_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.to_wire() if hasattr(value, "to_wire") else value.model_dump()
    if isinstance(value, (list, tuple)):
        return [_to_wire_value(item) for item in value]
    return value


def _is_quota_error(error: sqlite3.Error) -> bool:
    if getattr(error, "sqlite_errorcode", None) == getattr(sqlite3, "SQLITE_FULL", 13):
        return True
    return "database or disk is full" in str(error).lower()


class LibraryStore(BaseDatabaseService):
    """
    Versioned, key-scoped store for library data.

    Public operations are coroutines; SQLite and file access run in worker
    threads.
    """

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        legacy_dir: str = DEFAULT_LEGACY_DIR,
        max_record_bytes: int = DEFAULT_MAX_RECORD_BYTES,
        migrations: MigrationService | None = None,
    ):
        """
        Initialize the library store.

        Args:
            db_path (str): Path to the SQLite database file
            legacy_dir (str): Directory of the flat JSON store (one file per key)
            max_record_bytes (int): Largest serialized record accepted on write
            migrations (MigrationService): Upgrade registry for older records
        """
        super().__init__(db_path)
        self.legacy_dir = Path(legacy_dir)
        self.max_record_bytes = max_record_bytes
        self.migrations = migrations or MigrationService()
        self._init_table()

    def _init_table(self):
        """
        Initialize the library_records table.
        """
        with self.get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS library_records (
                    storage_key TEXT PRIMARY KEY,         -- Namespace (guest or user)
                    payload TEXT NOT NULL,                -- JSON record
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    # ------------------------- Raw record access ------------------------- #

    def _read_payload(self, key: str) -> str | None:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT payload FROM library_records WHERE storage_key = ?", (key,)
            ).fetchone()
        return row["payload"] if row else None

    def _write_payload(self, key: str, payload: str):
        size_bytes = len(payload.encode("utf-8"))
        if size_bytes > self.max_record_bytes:
            raise StorageQuotaExceededError(key, size_bytes)

        try:
            with self.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO library_records (storage_key, payload, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(storage_key) DO UPDATE SET
                        payload = excluded.payload,
                        updated_at = excluded.updated_at
                    """,
                    (key, payload, self.get_current_timestamp()),
                )
        except sqlite3.Error as e:
            if _is_quota_error(e):
                raise StorageQuotaExceededError(key, size_bytes) from e
            raise StorageError(f"Failed to write library data for '{key}': {e}") from e

    def _legacy_path(self, key: str) -> Path:
        safe_key = re.sub(r"[^A-Za-z0-9._-]", "_", key)
        return self.legacy_dir / f"{safe_key}.json"

    def _read_legacy(self, key: str) -> str | None:
        path = self._legacy_path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    async def _write_record(self, key: str, data: StorageData):
        record = PersistedRecord(version=CURRENT_STORAGE_VERSION, data=data.to_wire())
        payload = json.dumps(record.model_dump(), ensure_ascii=False)
        try:
            await asyncio.to_thread(self._write_payload, key, payload)
        except StorageQuotaExceededError as e:
            logger.error(
                f"Storage Limit Reached! {e.size_bytes} bytes for '{key}'. "
                "Use smaller images or delete books."
            )
            raise
        except StorageError as e:
            logger.error(f"Failed to save data to storage: {e}")
            raise

    # ------------------------- Public operations ------------------------- #

    async def read_record(self, key: str = GUEST_STORAGE_KEY) -> tuple[RecordFormat, int]:
        """
        Report the shape and version of what is stored under ``key``.
        """
        payload = await asyncio.to_thread(self._read_payload, key)
        record = json.loads(payload) if payload is not None else None
        return self.migrations.classify(record)

    async def _migrate_legacy(self, key: str) -> tuple[StorageData, SanitizeReport] | None:
        try:
            legacy_payload = await asyncio.to_thread(self._read_legacy, key)
            if legacy_payload is None:
                return None
            migrated = self.migrations.migrate_legacy(json.loads(legacy_payload))
            if migrated is None:
                return None

            logger.info(f"Migrating data from flat JSON store for '{key}' (Legacy -> V1)...")
            result = await sanitize_with_report(migrated)
            await self._write_record(key, result[0])
            return result
        except (OSError, ValueError, StorageError) as e:
            logger.error(f"Failed to migrate legacy data for '{key}': {e}")
            return None

    async def load_with_report(
        self, key: str = GUEST_STORAGE_KEY
    ) -> tuple[StorageData, SanitizeReport]:
        """
        Load and sanitize the library stored under ``key``.

        Falls back to an empty library on any read or parse failure.

        Returns:
            tuple[StorageData, SanitizeReport]: The library and what the
            sanitizer removed from it
        """
        try:
            payload = await asyncio.to_thread(self._read_payload, key)

            if payload is None:
                migrated = await self._migrate_legacy(key)
                if migrated is not None:
                    return migrated
                return StorageData(), SanitizeReport()

            data, record_format = self.migrations.migrate_record(json.loads(payload))
            result = await sanitize_with_report(data)

            if record_format == RecordFormat.UNVERSIONED:
                try:
                    await self._write_record(key, result[0])
                except StorageError as e:
                    logger.warning(f"Could not re-save migrated data for '{key}': {e}")

            return result

        except (sqlite3.Error, OSError, ValueError, StorageError) as e:
            logger.error(f"Failed to load data from storage for '{key}': {e}")
            return StorageData(), SanitizeReport()

    async def load(self, key: str = GUEST_STORAGE_KEY) -> StorageData:
        data, _ = await self.load_with_report(key)
        return data

    async def _read_current(self, key: str) -> dict[str, Any]:
        try:
            payload = await asyncio.to_thread(self._read_payload, key)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read library data for '{key}': {e}") from e

        if payload is None:
            return default_storage_dict()

        try:
            record = json.loads(payload)
        except ValueError:
            logger.error(f"Stored data for '{key}' is not valid JSON; starting from defaults")
            return default_storage_dict()

        if isinstance(record, Mapping) and "version" in record and "data" in record:
            current = record["data"]
        else:
            current = record

        if not isinstance(current, Mapping):
            logger.error(f"Stored data for '{key}' is not an object; starting from defaults")
            return default_storage_dict()
        return dict(current)

    async def save(
        self, patch: Mapping[str, Any], key: str = GUEST_STORAGE_KEY
    ) -> StorageData:
        """
        Shallow-merge ``patch`` over the stored blob, sanitize and write back.

        Args:
            patch: Top-level StorageData fields to replace (models or wire dicts)
            key: Namespace key

        Returns:
            StorageData: What was written

        Raises:
            StorageQuotaExceededError: If the store is full
            StorageError: If the write failed for another reason
        """
        current = await self._read_current(key)
        merged = {**current, **{k: _to_wire_value(v) for k, v in patch.items()}}

        sanitized = await self._sanitize_for_write(merged)
        await self._write_record(key, sanitized)
        return sanitized

    async def replace(
        self, data: StorageData | Mapping[str, Any], key: str = GUEST_STORAGE_KEY
    ) -> StorageData:
        """
        Sanitize ``data`` and overwrite everything stored under ``key``.

        Used for backup imports; nothing from the existing record is kept.
        """
        sanitized = await self._sanitize_for_write(data)
        await self._write_record(key, sanitized)
        logger.info(
            f"Replaced library '{key}': {len(sanitized.books)} book(s), "
            f"{len(sanitized.authors)} author(s)"
        )
        return sanitized

    async def _sanitize_for_write(self, data: Any) -> StorageData:
        try:
            sanitized, _ = await sanitize_with_report(data)
        except StorageFormatError as e:
            logger.error(f"Refusing to write malformed library data: {e}")
            raise
        return sanitized
