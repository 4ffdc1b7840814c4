"""
Backup Router

Export the caller's library as a downloadable JSON file and restore it
from one. An import replaces everything in the namespace.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from ..services.backup_service import export_backup, import_backup
from ..services.errors import LibraryError
from ..services.library_registry import LibraryRegistry, get_library_registry
from .dependencies import get_storage_key, to_http_exception

# Configure logger for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/backup", tags=["backup"])


@router.get("/export")
async def export_library(
    key: str = Depends(get_storage_key),
    registry: LibraryRegistry = Depends(get_library_registry),
):
    """
    Download the stored library as pretty-printed JSON named with today's date.
    """
    filename, document = await export_backup(registry.store, key)
    return Response(
        content=document,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def import_library(
    request: Request,
    key: str = Depends(get_storage_key),
    registry: LibraryRegistry = Depends(get_library_registry),
):
    """
    Replace the library with the JSON document in the request body.

    Raises:
        HTTPException: 400 if the document is not JSON or has no "books" array
    """
    body = await request.body()
    async with registry.lock(key):
        try:
            imported = await import_backup(registry.store, body, key)
        except LibraryError as e:
            raise to_http_exception(e)
        registry.invalidate(key)

    return {
        "message": "Backup imported successfully",
        "books": len(imported.books),
        "authors": len(imported.authors),
    }
