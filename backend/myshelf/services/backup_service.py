"""
Backup Service Module

Export of a namespace's library to a pretty-printed JSON file and import of
such a file as a full replacement.
"""

import json
import logging
from datetime import date

from myshelf.models.library_models import StorageData

from .errors import ImportFormatError
from .library_store import GUEST_STORAGE_KEY, LibraryStore

# Configure logger for this module
logger = logging.getLogger(__name__)

BACKUP_FILENAME_PREFIX = "my-shelf-backup"


def backup_filename(today: date | None = None) -> str:
    return f"{BACKUP_FILENAME_PREFIX}-{(today or date.today()).isoformat()}.json"


async def export_backup(
    store: LibraryStore, key: str = GUEST_STORAGE_KEY, today: date | None = None
) -> tuple[str, str]:
    """
    Serialize the stored library for ``key``.

    Returns:
        tuple[str, str]: Suggested file name and the JSON document
    """
    data = await store.load(key)
    document = json.dumps(data.to_wire(), indent=2, ensure_ascii=False)
    logger.info(f"Exported library '{key}' ({len(data.books)} book(s))")
    return backup_filename(today), document


def parse_backup(raw_text: str | bytes) -> dict:
    """
    Parse a backup document and check the minimal shape.

    Raises:
        ImportFormatError: If the text is not JSON or has no "books" array
    """
    try:
        document = json.loads(raw_text)
    except (ValueError, TypeError) as e:
        raise ImportFormatError(f"Backup file is not valid JSON: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("books"), list):
        raise ImportFormatError('Invalid backup file format. Missing "books" array.')
    return document


async def import_backup(
    store: LibraryStore, raw_text: str | bytes, key: str = GUEST_STORAGE_KEY
) -> StorageData:
    """
    Replace everything stored under ``key`` with the backup contents.

    The file is checked before anything is written; an invalid file leaves
    the stored library untouched.
    """
    document = parse_backup(raw_text)
    imported = await store.replace(document, key)
    logger.info(
        f"Imported backup into '{key}': kept {len(imported.books)} of "
        f"{len(document['books'])} book(s)"
    )
    return imported
