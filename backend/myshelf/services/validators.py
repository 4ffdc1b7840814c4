"""
Book and Author Validators

Pure predicates over library entities. They never raise; a failed check is
logged as a warning and reported through the return value. The same checks
back two policies: the sanitizing pipeline drops what fails, the library
service refuses the write.
"""

import logging
import re
from datetime import datetime
from typing import Iterable

from myshelf.models.library_models import READING_STATUSES, Author, Book

# Configure logger for this module
logger = logging.getLogger(__name__)

_YEAR_ONLY = re.compile(r"^\d{4}$")


def parse_date(value: str | None) -> datetime | None:
    """
    Parse an ISO date, ISO datetime or bare four-digit year.

    A bare year resolves to January 1 of that year. Timezone-aware values are
    converted to naive local time so they compare against ``datetime.now()``.

    Returns:
        datetime | None: The parsed value, or None when it cannot be parsed
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    try:
        if _YEAR_ONLY.match(text):
            return datetime(int(text), 1, 1)
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def is_valid_date(value: str | None) -> bool:
    """Empty values are valid (the field is optional)."""
    if not value:
        return True
    return parse_date(value) is not None


def is_future_date(value: str | None, now: datetime | None = None) -> bool:
    parsed = parse_date(value)
    if parsed is None:
        return False
    return parsed > (now or datetime.now())


def _is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def author_validation_error(author: Author | None) -> str | None:
    """Return why an author is invalid, or None when it is valid."""
    if author is None:
        return "missing author"
    if _is_blank(author.name):
        return f"author {author.id or '?'} has invalid name"
    return None


def validate_author(author: Author | None) -> bool:
    reason = author_validation_error(author)
    if reason:
        logger.warning(f"Validation Failed: {reason}")
        return False
    return True


def book_validation_error(
    book: Book | None,
    available_authors: Iterable[str] = (),
    now: datetime | None = None,
) -> str | None:
    """
    Return the first reason a book is invalid, or None when it is valid.

    Checks run in a fixed order and stop at the first failure. The author
    existence check only applies when ``available_authors`` is non-empty so
    that books can be admitted before any author has been created; a book
    admitted that way shows up later in the orphan report.

    Args:
        book: The book to check
        available_authors: Names of the authors currently registered
        now: Reference time for the future publish date check

    Returns:
        str | None: Human-readable reason, or None
    """
    if book is None:
        return "missing book"

    if _is_blank(book.id):
        return "book missing ID"

    if _is_blank(book.title):
        return f"book {book.id} has invalid title"

    if _is_blank(book.author):
        return f'book {book.id} ("{book.title}") has invalid author'

    if _is_blank(book.language):
        return f'book "{book.title}" has invalid language'

    if _is_blank(book.publisher):
        return f'book "{book.title}" has invalid publisher'

    author_names = list(available_authors)
    if author_names and book.author not in author_names:
        return f'book "{book.title}" references unknown author "{book.author}"'

    if not _is_number(book.pages) or book.pages <= 0:
        return f'book "{book.title}" has invalid pages: {book.pages}'

    # Gifted books may be free but never negative
    if book.is_gifted:
        if _is_number(book.price) and book.price < 0:
            return f'book "{book.title}" has negative price: {book.price}'
    elif not _is_number(book.price) or book.price <= 0:
        return f'book "{book.title}" has invalid price: {book.price}'

    if book.purchase_date and not is_valid_date(book.purchase_date):
        return f'book "{book.title}" has invalid purchaseDate'

    if book.publish_date:
        if not is_valid_date(book.publish_date):
            return f'book "{book.title}" has invalid publishDate'
        # Applies to year-only values too: "2050" is January 1, 2050
        if is_future_date(book.publish_date, now):
            return f'book "{book.title}" has publishDate in the future'

    if book.status not in READING_STATUSES:
        return f'book "{book.title}" has invalid status: {book.status}'

    return None


def validate_book(
    book: Book | None,
    available_authors: Iterable[str] = (),
    now: datetime | None = None,
) -> bool:
    reason = book_validation_error(book, available_authors, now)
    if reason:
        logger.warning(f"Validation Failed: {reason}")
        return False
    return True
