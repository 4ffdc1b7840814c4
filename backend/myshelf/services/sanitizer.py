"""
Storage Sanitizer

Turns an untrusted StorageData-shaped blob (a stored record, a migrated
legacy record or an imported backup) into a StorageData whose every entity
passes the validators and image guard.

Per-entity problems never raise: invalid authors and books are dropped and
bad images are stripped, each with an entry in the SanitizeReport. Only a
blob that is not an object at all raises StorageFormatError.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from myshelf.models.library_models import (
    Author,
    Book,
    LibrarySettings,
    StorageData,
)

from .errors import StorageFormatError
from .image_guard import (
    MAX_AUTHOR_IMAGE_SIZE_BYTES,
    MAX_IMAGE_SIZE_BYTES,
    image_rejection_reason,
    validate_image_content,
)
from .validators import author_validation_error, book_validation_error

# Configure logger for this module
logger = logging.getLogger(__name__)

_AGGREGATE_KEYS = {"books", "authors", "languages", "publishers", "settings"}


@dataclass
class DroppedItem:
    """One entity (or image field) removed during sanitizing"""

    label: str
    reason: str


@dataclass
class SanitizeReport:
    dropped_authors: list[DroppedItem] = field(default_factory=list)
    dropped_books: list[DroppedItem] = field(default_factory=list)
    stripped_author_photos: list[DroppedItem] = field(default_factory=list)
    stripped_cover_images: list[DroppedItem] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(
            self.dropped_authors
            or self.dropped_books
            or self.stripped_author_photos
            or self.stripped_cover_images
        )


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _entry_label(entry: Any, key: str) -> str:
    if isinstance(entry, Mapping):
        return str(entry.get(key) or entry.get("id") or "?")
    return repr(entry)[:40]


def _coerce(model_cls, entry: Any):
    """Build a model copy from a dict or model; raise ValueError if impossible."""
    if isinstance(entry, model_cls):
        return entry.model_copy(deep=True)
    if not isinstance(entry, Mapping):
        raise ValueError(f"expected an object, got {type(entry).__name__}")
    try:
        return model_cls.model_validate(dict(entry))
    except ValidationError as e:
        raise ValueError(f"malformed fields: {e.error_count()} error(s)") from e


async def _image_problem(data_url: str, max_size_bytes: int) -> str | None:
    reason = image_rejection_reason(data_url, max_size_bytes)
    if reason:
        return f"invalid format or size: {reason}"
    if not await validate_image_content(data_url):
        return "image failed to decode"
    return None


async def _sanitize_authors(entries: list, report: SanitizeReport) -> list[Author]:
    valid_authors: list[Author] = []

    for entry in entries:
        try:
            author = _coerce(Author, entry)
        except ValueError as e:
            label = _entry_label(entry, "name")
            logger.warning(f"Skipping invalid author: {label} ({e})")
            report.dropped_authors.append(DroppedItem(label, str(e)))
            continue

        reason = author_validation_error(author)
        if reason:
            logger.warning(f"Skipping invalid author: {author.name!r} ({reason})")
            report.dropped_authors.append(DroppedItem(author.name or "?", reason))
            continue

        if author.photo:
            problem = await _image_problem(author.photo, MAX_AUTHOR_IMAGE_SIZE_BYTES)
            if problem:
                logger.warning(
                    f'Dropping invalid author image for author "{author.name}": {problem}'
                )
                report.stripped_author_photos.append(DroppedItem(author.name, problem))
                author.photo = None

        valid_authors.append(author)

    return valid_authors


async def _sanitize_books(
    entries: list, author_names: list[str], report: SanitizeReport
) -> list[Book]:
    valid_books: list[Book] = []

    for entry in entries:
        try:
            book = _coerce(Book, entry)
        except ValueError as e:
            label = _entry_label(entry, "title")
            logger.warning(f"Skipping invalid book: {label} ({e})")
            report.dropped_books.append(DroppedItem(label, str(e)))
            continue

        reason = book_validation_error(book, author_names)
        if reason:
            logger.warning(f"Skipping invalid book: {book.title!r} ({reason})")
            report.dropped_books.append(DroppedItem(book.title or "?", reason))
            continue

        if book.cover_image:
            problem = await _image_problem(book.cover_image, MAX_IMAGE_SIZE_BYTES)
            if problem:
                logger.warning(
                    f'Dropping invalid cover image for book "{book.title}": {problem}'
                )
                report.stripped_cover_images.append(DroppedItem(book.title, problem))
                book.cover_image = None

        valid_books.append(book)

    return valid_books


def _clean_registry(values: Any) -> list[str]:
    """Deduplicate exact string collisions and sort."""
    return sorted(
        {value for value in _as_list(values) if isinstance(value, str) and value.strip()}
    )


def _clean_settings(value: Any) -> LibrarySettings:
    if isinstance(value, LibrarySettings):
        return value.model_copy()
    if isinstance(value, Mapping):
        try:
            return LibrarySettings.model_validate(dict(value))
        except ValidationError:
            logger.warning("Ignoring malformed settings, using defaults")
    return LibrarySettings()


async def sanitize_with_report(raw: Any) -> tuple[StorageData, SanitizeReport]:
    """
    Sanitize a blob and describe everything that was removed.

    Authors are processed first because book validity depends on the names
    of the authors that survive.

    Raises:
        StorageFormatError: If ``raw`` is not an object
    """
    if isinstance(raw, StorageData):
        raw = raw.to_wire()
    if not isinstance(raw, Mapping):
        raise StorageFormatError(
            f"Expected a library object, got {type(raw).__name__}"
        )

    report = SanitizeReport()

    authors = await _sanitize_authors(_as_list(raw.get("authors")), report)
    author_names = [author.name for author in authors]
    books = await _sanitize_books(_as_list(raw.get("books")), author_names, report)

    extras = {k: v for k, v in raw.items() if k not in _AGGREGATE_KEYS}
    data = StorageData(
        **extras,
        books=books,
        authors=authors,
        languages=_clean_registry(raw.get("languages")),
        publishers=_clean_registry(raw.get("publishers")),
        settings=_clean_settings(raw.get("settings")),
    )

    if report.has_changes:
        logger.info(
            f"Sanitized library: dropped {len(report.dropped_authors)} author(s), "
            f"{len(report.dropped_books)} book(s); stripped "
            f"{len(report.stripped_author_photos)} photo(s), "
            f"{len(report.stripped_cover_images)} cover(s)"
        )

    return data, report


async def sanitize_data(raw: Any) -> StorageData:
    data, _ = await sanitize_with_report(raw)
    return data
