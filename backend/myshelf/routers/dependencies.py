"""
Shared Router Dependencies

Resolves the active namespace from the request and maps library errors to
HTTP responses.
"""

import logging

from fastapi import Depends, Header, HTTPException

from ..services.errors import (
    AuthorInUseError,
    AuthorNotFoundError,
    AuthorValidationError,
    BookNotFoundError,
    BookValidationError,
    ImportFormatError,
    LibraryError,
    StorageQuotaExceededError,
)
from ..services.library_registry import LibraryRegistry, get_library_registry
from ..services.library_service import LibraryService
from ..services.library_store import storage_key_for

# Configure logger for this module
logger = logging.getLogger(__name__)


def get_storage_key(x_user_id: str | None = Header(default=None)) -> str:
    """Namespace for the caller; requests without a user id are guests."""
    return storage_key_for(x_user_id)


async def get_library(
    key: str = Depends(get_storage_key),
    registry: LibraryRegistry = Depends(get_library_registry),
) -> LibraryService:
    return await registry.get(key)


def to_http_exception(error: LibraryError) -> HTTPException:
    """
    Translate a library error into the matching HTTP status.
    """
    if isinstance(error, (BookValidationError, AuthorValidationError, ImportFormatError)):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, (BookNotFoundError, AuthorNotFoundError)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, AuthorInUseError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, StorageQuotaExceededError):
        return HTTPException(status_code=507, detail=str(error))

    logger.error(f"Library operation failed: {error}")
    return HTTPException(status_code=500, detail=f"Storage error: {error}")
