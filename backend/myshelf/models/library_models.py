"""
Library Type Models

Pydantic models for the persisted library aggregate: books, authors,
settings and the versioned storage envelope.

Attributes are snake_case in Python; the stored, exported and imported JSON
keeps camelCase keys (purchaseDate, coverImage, isGifted, ...).
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CURRENT_STORAGE_VERSION = 1
DEFAULT_CURRENCY = "$"


class ReadingStatus(str, Enum):
    """Reading status of a book"""

    TO_READ = "To Read"
    READING = "Reading"
    COMPLETED = "Completed"
    DROPPED = "Dropped"


READING_STATUSES = [status.value for status in ReadingStatus]

AuthorSortOrder = Literal["asc", "desc", "none"]


class WireModel(BaseModel):
    """Base for models that round-trip through the camelCase JSON format"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the camelCase dict used for storage and backups."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Book(WireModel):
    """A single book in the library.

    ``author`` holds the author's name, not an id. Status is kept as a
    plain string so that unknown values reach the validators instead of
    failing model construction. Numbers and flags are strict: "300" or
    "yes" makes the book malformed rather than being coerced.
    """

    id: str = ""
    title: str = ""
    author: str = ""
    language: str = ""
    pages: int | None = Field(default=0, strict=True)
    publisher: str = ""
    purchase_date: str | None = None
    publish_date: str | None = None
    publish_year_only: bool | None = Field(default=None, strict=True)
    cover_image: str | None = None
    price: float | None = Field(default=0, strict=True)
    status: str = ReadingStatus.TO_READ.value
    start_date: str | None = None
    completion_date: str | None = None
    notes: str | None = None
    current_page: int | None = Field(default=None, strict=True)
    rating: int | None = Field(default=None, strict=True)
    is_gifted: bool | None = Field(default=None, strict=True)


class Author(WireModel):
    """An author; ``photo`` is an embedded data-URL image"""

    id: str = ""
    name: str = ""
    photo: str | None = None


class LibrarySettings(WireModel):
    currency: str = DEFAULT_CURRENCY


class StorageData(WireModel):
    """The whole library aggregate for one namespace"""

    books: list[Book] = Field(default_factory=list)
    authors: list[Author] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    publishers: list[str] = Field(default_factory=list)
    settings: LibrarySettings = Field(default_factory=LibrarySettings)


class PersistedRecord(BaseModel):
    """Version envelope written under each storage key"""

    version: int = CURRENT_STORAGE_VERSION
    data: dict[str, Any]


class BookCreate(WireModel):
    """Request model for creating a book (the id is always assigned)"""

    title: str
    author: str
    language: str
    pages: int
    publisher: str
    price: float | None = 0
    status: str = ReadingStatus.TO_READ.value
    purchase_date: str | None = None
    publish_date: str | None = None
    publish_year_only: bool | None = None
    cover_image: str | None = None
    start_date: str | None = None
    completion_date: str | None = None
    notes: str | None = None
    current_page: int | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    is_gifted: bool | None = None


class BookUpdate(WireModel):
    """Partial book update. All fields are optional."""

    title: str | None = None
    author: str | None = None
    language: str | None = None
    pages: int | None = None
    publisher: str | None = None
    price: float | None = None
    status: str | None = None
    purchase_date: str | None = None
    publish_date: str | None = None
    publish_year_only: bool | None = None
    cover_image: str | None = None
    start_date: str | None = None
    completion_date: str | None = None
    notes: str | None = None
    current_page: int | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    is_gifted: bool | None = None


class RecordFormat(str, Enum):
    """Shapes a stored record can take"""

    MISSING = "missing"
    UNVERSIONED = "unversioned"
    VERSIONED = "versioned"
    FUTURE = "future"
