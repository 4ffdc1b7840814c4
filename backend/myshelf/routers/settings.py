"""
Settings Router

API endpoints for per-namespace display settings.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..services.errors import LibraryError
from ..services.library_registry import LibraryRegistry, get_library_registry
from ..services.library_service import SUPPORTED_CURRENCIES, LibraryService
from .dependencies import get_library, get_storage_key, to_http_exception

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsUpdateRequest(BaseModel):
    currency: str


@router.get("")
async def get_settings(library: LibraryService = Depends(get_library)):
    return {
        "settings": library.settings.to_wire(),
        "supportedCurrencies": [
            {"symbol": symbol, "name": name} for symbol, name in SUPPORTED_CURRENCIES.items()
        ],
    }


@router.put("")
async def update_settings(
    request: SettingsUpdateRequest,
    key: str = Depends(get_storage_key),
    registry: LibraryRegistry = Depends(get_library_registry),
):
    """
    Update the currency symbol.

    Raises:
        HTTPException: 400 for an unsupported currency
    """
    async with registry.lock(key):
        library = await registry.get(key)
        try:
            settings = await library.update_settings(request.currency)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except LibraryError as e:
            raise to_http_exception(e)
    return {"settings": settings.to_wire()}
