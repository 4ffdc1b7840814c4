"""
Library Service Module

In-memory view of one namespace's library with mutation operations that
keep books and authors consistent. Books reference authors by name, so
renames cascade to books and deletes are refused while an author is still
referenced.

Every mutation validates first, then persists through the LibraryStore, and
only replaces the in-memory state after the store call returned. Callers
must await each mutation before issuing one that depends on it.
"""

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from myshelf.models.library_models import (
    Author,
    AuthorSortOrder,
    Book,
    BookCreate,
    BookUpdate,
    LibrarySettings,
    StorageData,
)

from .errors import (
    AuthorInUseError,
    AuthorNotFoundError,
    AuthorValidationError,
    BookNotFoundError,
    BookValidationError,
)
from .library_store import GUEST_STORAGE_KEY, LibraryStore
from .validators import book_validation_error

# Configure logger for this module
logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = {
    "$": "US Dollar",
    "€": "Euro",
    "£": "British Pound",
    "₹": "Indian Rupee",
    "¥": "Japanese Yen",
}


def _new_id() -> str:
    return str(uuid.uuid4())


def _contains_casefold(values: list[str], candidate: str) -> bool:
    folded = candidate.casefold()
    return any(value.casefold() == folded for value in values)


def _wire_keys(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Rename snake_case book field names to their camelCase aliases."""
    renamed = {}
    for key, value in fields.items():
        model_field = Book.model_fields.get(key)
        renamed[model_field.alias if model_field and model_field.alias else key] = value
    return renamed


class LibraryService:
    """
    Authoritative books, authors, languages, publishers and settings for a
    single storage key.
    """

    def __init__(self, store: LibraryStore, key: str, data: StorageData):
        self.store = store
        self.key = key
        self.author_sort_order: AuthorSortOrder = "asc"
        self._apply(data)

    @classmethod
    async def open(
        cls, store: LibraryStore, key: str = GUEST_STORAGE_KEY
    ) -> "LibraryService":
        """Load the namespace and wrap it in a service."""
        data = await store.load(key)
        logger.info(
            f"Loaded library '{key}': {len(data.books)} book(s), "
            f"{len(data.authors)} author(s)"
        )
        return cls(store, key, data)

    def _apply(self, data: StorageData):
        self._books = list(data.books)
        self._authors = list(data.authors)
        self._languages = list(data.languages)
        self._publishers = list(data.publishers)
        self._settings = data.settings

    async def _persist(self, patch: Mapping[str, Any]):
        saved = await self.store.save(patch, self.key)
        self._apply(saved)

    async def reload(self):
        self._apply(await self.store.load(self.key))

    # ------------------------- Read views ------------------------- #

    @property
    def books(self) -> list[Book]:
        return list(self._books)

    @property
    def authors(self) -> list[Author]:
        """Authors in ``author_sort_order``; stored order is never changed."""
        return self.sorted_authors(self.author_sort_order)

    def sorted_authors(self, order: AuthorSortOrder) -> list[Author]:
        if order == "none":
            return list(self._authors)
        return sorted(
            self._authors,
            key=lambda author: author.name.casefold(),
            reverse=order == "desc",
        )

    @property
    def author_names(self) -> list[str]:
        return [author.name for author in self._authors]

    @property
    def languages(self) -> list[str]:
        return list(self._languages)

    @property
    def publishers(self) -> list[str]:
        return list(self._publishers)

    @property
    def settings(self) -> LibrarySettings:
        return self._settings.model_copy()

    def snapshot(self) -> StorageData:
        return StorageData(
            books=self.books,
            authors=list(self._authors),
            languages=self.languages,
            publishers=self.publishers,
            settings=self.settings,
        )

    def get_book(self, book_id: str) -> Book | None:
        return next((book for book in self._books if book.id == book_id), None)

    def get_author(self, author_id: str) -> Author | None:
        return next((author for author in self._authors if author.id == author_id), None)

    def _find_author_by_name(self, name: str) -> Author | None:
        folded = name.casefold()
        return next(
            (author for author in self._authors if author.name.casefold() == folded),
            None,
        )

    # ------------------------- Books ------------------------- #

    def _check_book(self, book: Book):
        reason = book_validation_error(book, self.author_names)
        if reason:
            logger.warning(f"Rejected book write: {reason}")
            raise BookValidationError(reason)

    async def add_book(self, data: BookCreate | Mapping[str, Any]) -> Book:
        """
        Add a book with a freshly generated id.

        Raises:
            BookValidationError: If the book fails validation; nothing is saved
        """
        fields = data.to_wire() if isinstance(data, BookCreate) else _wire_keys(data)
        fields.pop("id", None)
        try:
            book = Book.model_validate({**fields, "id": _new_id()})
        except ValidationError as e:
            raise BookValidationError(f"malformed book fields ({e.error_count()} error(s))") from e

        self._check_book(book)
        await self._persist({"books": [*self._books, book]})
        logger.info(f'Added book "{book.title}" ({book.id})')
        return self.get_book(book.id) or book

    async def update_book(
        self, book_id: str, patch: BookUpdate | Mapping[str, Any]
    ) -> Book:
        """
        Merge ``patch`` onto a book and save it if the merged book is valid.

        Raises:
            BookNotFoundError: If no book has ``book_id``
            BookValidationError: If the merged book fails validation
        """
        current = self.get_book(book_id)
        if current is None:
            raise BookNotFoundError(f"Book {book_id} not found")

        if isinstance(patch, BookUpdate):
            changes = patch.model_dump(by_alias=True, exclude_unset=True)
        else:
            changes = _wire_keys(patch)
        changes.pop("id", None)

        try:
            updated = Book.model_validate({**current.to_wire(), **changes, "id": book_id})
        except ValidationError as e:
            raise BookValidationError(f"malformed book fields ({e.error_count()} error(s))") from e

        self._check_book(updated)
        await self._persist(
            {"books": [updated if book.id == book_id else book for book in self._books]}
        )
        return self.get_book(book_id) or updated

    async def delete_book(self, book_id: str) -> bool:
        if self.get_book(book_id) is None:
            return False
        await self._persist({"books": [book for book in self._books if book.id != book_id]})
        logger.info(f"Deleted book {book_id}")
        return True

    # ------------------------- Authors ------------------------- #

    async def add_author(self, name: str, photo: str | None = None) -> Author | None:
        """
        Add an author unless one with the same name (ignoring case) exists.

        Returns:
            Author | None: The new author, or None for a duplicate name
        """
        name = (name or "").strip()
        if not name:
            raise AuthorValidationError("Author name cannot be empty")
        if self._find_author_by_name(name):
            logger.info(f'Author "{name}" already exists, not adding')
            return None

        author = Author(id=_new_id(), name=name, photo=photo or None)
        await self._persist({"authors": [*self._authors, author]})
        return self.get_author(author.id) or author

    async def update_author(
        self, author_id: str, name: str, photo: str | None = None
    ) -> Author:
        """
        Rename an author and/or change the photo.

        A rename rewrites every book that carried the old name, and books and
        authors are saved together in one store call. ``photo=None`` keeps the
        current photo; an empty string removes it.

        Raises:
            AuthorNotFoundError: If no author has ``author_id``
            AuthorValidationError: If the new name is empty or taken
        """
        old = self.get_author(author_id)
        if old is None:
            raise AuthorNotFoundError(f"Author {author_id} not found")

        name = (name or "").strip()
        if not name:
            raise AuthorValidationError("Author name cannot be empty")
        clash = self._find_author_by_name(name)
        if clash is not None and clash.id != author_id:
            raise AuthorValidationError(f'An author named "{clash.name}" already exists')

        updated = old.model_copy(
            update={"name": name, "photo": old.photo if photo is None else (photo or None)}
        )
        new_authors = [updated if a.id == author_id else a for a in self._authors]

        if old.name != name:
            new_books = [
                book.model_copy(update={"author": name}) if book.author == old.name else book
                for book in self._books
            ]
            renamed = sum(1 for book in self._books if book.author == old.name)
            await self._persist({"authors": new_authors, "books": new_books})
            logger.info(f'Renamed author "{old.name}" to "{name}" ({renamed} book(s) updated)')
        else:
            await self._persist({"authors": new_authors})

        return self.get_author(author_id) or updated

    async def delete_author(self, author_id: str):
        """
        Delete an author that no book references.

        Raises:
            AuthorNotFoundError: If no author has ``author_id``
            AuthorInUseError: If books still reference the author
        """
        author = self.get_author(author_id)
        if author is None:
            raise AuthorNotFoundError(f"Author {author_id} not found")

        book_count = sum(1 for book in self._books if book.author == author.name)
        if book_count:
            error = AuthorInUseError(author.name, book_count)
            logger.warning(str(error))
            raise error

        await self._persist({"authors": [a for a in self._authors if a.id != author_id]})
        logger.info(f'Deleted author "{author.name}"')

    def check_orphans(self) -> list[str]:
        """
        Author names used by books but missing from the author registry.
        """
        registered = set(self.author_names)
        orphans: list[str] = []
        for book in self._books:
            if book.author not in registered and book.author not in orphans:
                orphans.append(book.author)
        return orphans

    async def reassign_books(self, old_name: str, new_name: str) -> int:
        """
        Point every book by ``old_name`` at ``new_name``.

        Unlike a rename, ``old_name`` need not belong to any author; this is
        how orphaned books are repaired.

        Returns:
            int: Number of books rewritten
        """
        new_name = (new_name or "").strip()
        if not new_name:
            raise AuthorValidationError("New author name cannot be empty")

        count = sum(1 for book in self._books if book.author == old_name)
        if not count:
            return 0

        await self._persist(
            {
                "books": [
                    book.model_copy(update={"author": new_name})
                    if book.author == old_name
                    else book
                    for book in self._books
                ]
            }
        )
        logger.info(f'Reassigned {count} book(s) from "{old_name}" to "{new_name}"')
        return count

    # ------------------------- Registries ------------------------- #

    async def _add_to_registry(self, field_name: str, values: list[str], value: str) -> bool:
        value = (value or "").strip()
        if not value or _contains_casefold(values, value):
            return False
        await self._persist({field_name: sorted([*values, value])})
        return True

    async def _remove_from_registry(self, field_name: str, values: list[str], value: str) -> bool:
        folded = (value or "").strip().casefold()
        remaining = [v for v in values if v.casefold() != folded]
        if len(remaining) == len(values):
            return False
        await self._persist({field_name: sorted(remaining)})
        return True

    async def add_language(self, language: str) -> bool:
        return await self._add_to_registry("languages", self._languages, language)

    async def delete_language(self, language: str) -> bool:
        return await self._remove_from_registry("languages", self._languages, language)

    async def add_publisher(self, publisher: str) -> bool:
        return await self._add_to_registry("publishers", self._publishers, publisher)

    async def delete_publisher(self, publisher: str) -> bool:
        return await self._remove_from_registry("publishers", self._publishers, publisher)

    # ------------------------- Settings ------------------------- #

    async def update_settings(self, currency: str) -> LibrarySettings:
        if currency not in SUPPORTED_CURRENCIES:
            raise ValueError(
                f"Unsupported currency {currency!r}. "
                f"Supported: {', '.join(SUPPORTED_CURRENCIES)}"
            )
        updated = self._settings.model_copy(update={"currency": currency})
        await self._persist({"settings": updated})
        return self.settings
