"""
Library Registry

Keeps one LibraryService per namespace key for the API layer and hands out
a per-key asyncio.Lock so that mutations of the same namespace within this
process run one at a time. Writers in other processes are not coordinated.
"""

import asyncio
import logging

from .library_service import LibraryService
from .library_store import LibraryStore

# Configure logger for this module
logger = logging.getLogger(__name__)


class LibraryRegistry:
    def __init__(self, store: LibraryStore):
        self.store = store
        self._libraries: dict[str, LibraryService] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def get(self, key: str) -> LibraryService:
        """Return the cached library for ``key``, loading it on first use."""
        library = self._libraries.get(key)
        if library is None:
            library = await LibraryService.open(self.store, key)
            self._libraries[key] = library
        return library

    def invalidate(self, key: str):
        """Forget the cached library so the next get() reloads from the store."""
        if self._libraries.pop(key, None) is not None:
            logger.info(f"Invalidated cached library '{key}'")


_registry: LibraryRegistry | None = None


def get_library_registry() -> LibraryRegistry:
    """Process-wide registry backed by the default store location."""
    global _registry
    if _registry is None:
        _registry = LibraryRegistry(LibraryStore())
    return _registry
