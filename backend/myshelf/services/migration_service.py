"""
Storage Migration Service

This module classifies stored library records by shape and upgrades older
shapes to the current StorageData layout. Each schema version has one
upgrade function; pending upgrades are applied in version order.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable

from myshelf.models.library_models import (
    CURRENT_STORAGE_VERSION,
    RecordFormat,
    StorageData,
)

from .errors import StorageFormatError

# Configure logger for this module
logger = logging.getLogger(__name__)


def default_storage_dict() -> dict[str, Any]:
    """The empty library in wire format."""
    return StorageData().to_wire()


def merge_onto_defaults(data: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow-merge a stored blob over the defaults so new fields get values."""
    return {**default_storage_dict(), **data}


def _upgrade_v0_to_v1(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Unversioned blobs predate the envelope. Missing or null book and author
    lists become empty lists.
    """
    return {
        **merge_onto_defaults(data),
        "books": data.get("books") or [],
        "authors": data.get("authors") or [],
    }


class MigrationService:
    """
    Service for upgrading stored library records.

    The registry maps a schema version to the function that upgrades a blob
    from that version to the next one.
    """

    def __init__(
        self,
        upgrades: dict[int, Callable[[Mapping[str, Any]], dict[str, Any]]] | None = None,
        current_version: int = CURRENT_STORAGE_VERSION,
    ):
        self.upgrades = upgrades if upgrades is not None else {0: _upgrade_v0_to_v1}
        self.current_version = current_version

    def classify(self, record: Any) -> tuple[RecordFormat, int]:
        """
        Work out what shape a stored record has.

        Returns:
            tuple[RecordFormat, int]: The format and the schema version
            (0 for unversioned records)

        Raises:
            StorageFormatError: If the record is neither an envelope nor a
            bare StorageData object
        """
        if record is None:
            return RecordFormat.MISSING, 0

        if not isinstance(record, Mapping):
            raise StorageFormatError(
                f"Stored record is a {type(record).__name__}, not an object"
            )

        if "version" in record and "data" in record:
            version = record["version"]
            if isinstance(version, bool) or not isinstance(version, int):
                raise StorageFormatError(f"Invalid record version: {version!r}")
            if not isinstance(record["data"], Mapping):
                raise StorageFormatError("Record envelope has no data object")
            if version > self.current_version:
                return RecordFormat.FUTURE, version
            return RecordFormat.VERSIONED, version

        return RecordFormat.UNVERSIONED, 0

    def get_pending_upgrades(self, from_version: int) -> list[int]:
        return [
            version
            for version in sorted(self.upgrades)
            if from_version <= version < self.current_version
        ]

    def upgrade(self, data: Mapping[str, Any], from_version: int) -> dict[str, Any]:
        """
        Apply every pending upgrade to ``data`` in version order.
        """
        upgraded = dict(data)
        for version in self.get_pending_upgrades(from_version):
            logger.info(f"Migrating library data (V{version} -> V{version + 1})...")
            upgraded = self.upgrades[version](upgraded)
        return upgraded

    def migrate_record(self, record: Any) -> tuple[dict[str, Any], RecordFormat]:
        """
        Produce current-layout data from a stored record.

        Future-version data is returned as stored, with a warning; it is never
        guessed into the current layout.

        Returns:
            tuple[dict, RecordFormat]: The data to sanitize and the format
            the record was stored in
        """
        record_format, version = self.classify(record)

        if record_format == RecordFormat.MISSING:
            return default_storage_dict(), record_format

        if record_format == RecordFormat.FUTURE:
            logger.warning(
                f"Data version mismatch! Storage has version {version}, "
                f"app supports {self.current_version}. "
                "Loading data safely but be careful saving."
            )
            return dict(record["data"]), record_format

        if record_format == RecordFormat.UNVERSIONED:
            return self.upgrade(record, 0), record_format

        data = self.upgrade(record["data"], version)
        return merge_onto_defaults(data), record_format

    def migrate_legacy(self, legacy: Any) -> dict[str, Any] | None:
        """
        Upgrade a record from the flat JSON store.

        Only objects with a "books" or "authors" key are library data, even
        when both lists are empty.
        """
        if not isinstance(legacy, Mapping):
            return None
        if "books" not in legacy and "authors" not in legacy:
            return None
        return self.upgrade(legacy, 0)
