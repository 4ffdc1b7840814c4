"""
Insights Router

Read-only endpoints exposing reading analytics and collection statistics
for the caller's namespace.
"""

from fastapi import APIRouter, Depends

from ..services.library_service import LibraryService
from ..services.library_statistics import (
    collection_summary,
    purchases_per_year,
    reading_pace,
    status_breakdown,
    top_authors_by_value,
)
from ..services.reading_analytics import (
    calculate_monthly_momentum,
    calculate_reading_consistency,
    calculate_reading_streak,
)
from .dependencies import get_library

router = APIRouter(prefix="/insights", tags=["insights"])


@router.get("/reading")
async def get_reading_metrics(library: LibraryService = Depends(get_library)):
    """
    Streak, consistency and month-over-month momentum.
    """
    books = library.books
    return {
        "streak": calculate_reading_streak(books).to_dict(),
        "consistency": calculate_reading_consistency(books).to_dict(),
        "momentum": calculate_monthly_momentum(books).to_dict(),
    }


@router.get("/summary")
async def get_summary(library: LibraryService = Depends(get_library)):
    summary = collection_summary(library.books)
    summary["currency"] = library.settings.currency
    return summary


@router.get("/collection")
async def get_collection_breakdown(library: LibraryService = Depends(get_library)):
    books = library.books
    return {
        "byStatus": status_breakdown(books),
        "topAuthorsByValue": top_authors_by_value(books),
        "purchasesPerYear": purchases_per_year(books),
        "readingPace": reading_pace(books),
    }
