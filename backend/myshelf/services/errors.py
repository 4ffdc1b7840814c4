"""
Library Errors

Exceptions raised by the storage and library services. Routers translate
them into HTTP responses.
"""


class LibraryError(Exception):
    """Base class for all library errors."""


class StorageError(LibraryError):
    """The underlying store could not be read or written."""


class StorageFormatError(StorageError):
    """A stored or imported blob is not a StorageData-shaped object."""


class StorageQuotaExceededError(StorageError):
    """A write was rejected because the store is full."""

    def __init__(self, key: str, size_bytes: int | None = None):
        self.key = key
        self.size_bytes = size_bytes
        message = (
            f"Storage limit reached for '{key}'. "
            "Remove large cover images or author photos and try again."
        )
        super().__init__(message)


class ImportFormatError(StorageError):
    """A backup file was rejected before anything was written."""


class BookValidationError(LibraryError, ValueError):
    """A book failed validation on add or update."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Book validation failed: {reason}")


class AuthorValidationError(LibraryError, ValueError):
    """An author name is empty or clashes with another author."""


class BookNotFoundError(LibraryError, LookupError):
    pass


class AuthorNotFoundError(LibraryError, LookupError):
    pass


class AuthorInUseError(LibraryError):
    """An author cannot be deleted while books still reference it."""

    def __init__(self, name: str, book_count: int):
        self.name = name
        self.book_count = book_count
        super().__init__(
            f'Cannot delete author "{name}" because they have '
            f"{book_count} book(s) in the library."
        )
