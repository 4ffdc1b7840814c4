"""
Services Package

This package contains the library core: validators and the image guard,
the sanitizing pipeline, the versioned SQLite store with its migrations,
the library aggregate, backups, and the pure analytics functions.
"""

from .backup_service import export_backup, import_backup
from .library_registry import LibraryRegistry, get_library_registry
from .library_service import LibraryService
from .library_store import GUEST_STORAGE_KEY, LibraryStore, storage_key_for
from .migration_service import MigrationService
from .sanitizer import SanitizeReport, sanitize_data, sanitize_with_report

__all__ = [
    "GUEST_STORAGE_KEY",
    "LibraryRegistry",
    "LibraryService",
    "LibraryStore",
    "MigrationService",
    "SanitizeReport",
    "export_backup",
    "get_library_registry",
    "import_backup",
    "sanitize_data",
    "sanitize_with_report",
    "storage_key_for",
]
