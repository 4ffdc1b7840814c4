"""
Library Statistics

Collection-level figures (counts, spend, purchases per year, reading pace)
and the filter/sort used by library listings. Like the reading analytics,
everything here is a pure function of the book list.
"""

import math
from collections import Counter, defaultdict
from typing import Iterable, Literal

from myshelf.models.library_models import READING_STATUSES, Book, ReadingStatus

from .reading_analytics import round_half_up
from .validators import parse_date

SortKey = Literal["title", "purchaseDate", "price"]
SortDirection = Literal["asc", "desc"]


def _price(book: Book) -> float:
    return float(book.price or 0)


def collection_summary(books: Iterable[Book]) -> dict:
    """
    Totals for a dashboard: book counts per status, total value and the
    average price of purchased (non-gifted) books.
    """
    books = list(books)
    counts = Counter(book.status for book in books)
    purchased = [book for book in books if not book.is_gifted]
    average_price = (
        round(sum(_price(book) for book in purchased) / len(purchased), 2)
        if purchased
        else 0
    )

    return {
        "totalBooks": len(books),
        "readingCount": counts[ReadingStatus.READING.value],
        "completedCount": counts[ReadingStatus.COMPLETED.value],
        "toReadCount": counts[ReadingStatus.TO_READ.value],
        "droppedCount": counts[ReadingStatus.DROPPED.value],
        "totalValue": round(sum(_price(book) for book in books), 2),
        "averagePrice": average_price,
    }


def status_breakdown(books: Iterable[Book]) -> list[dict]:
    counts = Counter(book.status for book in books)
    return [
        {"name": status, "value": counts[status]}
        for status in READING_STATUSES
        if counts[status]
    ]


def top_authors_by_value(books: Iterable[Book], limit: int = 5) -> list[dict]:
    values: dict[str, float] = defaultdict(float)
    for book in books:
        values[book.author] += _price(book)
    ranked = sorted(values.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "value": round(value, 2)} for name, value in ranked[:limit]]


def purchases_per_year(books: Iterable[Book]) -> list[dict]:
    counts: Counter = Counter()
    for book in books:
        purchased = parse_date(book.purchase_date)
        if purchased is not None:
            counts[str(purchased.year)] += 1
    return [{"year": year, "count": counts[year]} for year in sorted(counts)]


def reading_pace(books: Iterable[Book]) -> dict | None:
    """
    Average speed and duration over completed books with pages and dates.

    A book finished on the day it was started counts as one day.

    Returns:
        dict | None: avgSpeed (pages/day), avgDuration (days), fastest and
        slowest books by duration; None when no book qualifies
    """
    metrics = []
    for book in books:
        if book.status != ReadingStatus.COMPLETED.value or not book.pages or book.pages <= 0:
            continue
        start = parse_date(book.start_date)
        end = parse_date(book.completion_date)
        if start is None or end is None:
            continue
        duration_days = max(math.ceil((end - start).total_seconds() / 86400), 1)
        metrics.append(
            {
                "title": book.title,
                "durationDays": duration_days,
                "pagesPerDay": book.pages / duration_days,
            }
        )

    if not metrics:
        return None

    by_duration = sorted(metrics, key=lambda m: m["durationDays"])
    return {
        "avgSpeed": round_half_up(sum(m["pagesPerDay"] for m in metrics) / len(metrics)),
        "avgDuration": round_half_up(sum(m["durationDays"] for m in metrics) / len(metrics)),
        "fastest": by_duration[0],
        "slowest": by_duration[-1],
    }


def filter_books(
    books: Iterable[Book],
    search: str | None = None,
    author: str | None = None,
    status: str | None = None,
    language: str | None = None,
    publisher: str | None = None,
) -> list[Book]:
    """
    Filter books. ``search`` matches title or author ignoring case; the
    other filters are exact, case-sensitive matches.
    """
    term = (search or "").casefold()
    exact = {"author": author, "status": status, "language": language, "publisher": publisher}

    return [
        book
        for book in books
        if (not term or term in book.title.casefold() or term in book.author.casefold())
        and all(value is None or getattr(book, name) == value for name, value in exact.items())
    ]


_SORT_KEYS = {
    "title": lambda book: book.title.casefold(),
    "purchaseDate": lambda book: book.purchase_date or "",
    "price": _price,
}


def sort_books(
    books: Iterable[Book], key: SortKey = "title", direction: SortDirection = "asc"
) -> list[Book]:
    return sorted(books, key=_SORT_KEYS.get(key, _SORT_KEYS["title"]), reverse=direction == "desc")
