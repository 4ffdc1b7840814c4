"""
Library Router

API endpoints for books, authors, and the language and publisher
registries of the caller's namespace.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..models.library_models import AuthorSortOrder, BookCreate, BookUpdate
from ..services.errors import LibraryError
from ..services.library_registry import LibraryRegistry, get_library_registry
from ..services.library_service import LibraryService
from ..services.library_statistics import SortDirection, SortKey, filter_books, sort_books
from .dependencies import get_library, get_storage_key, to_http_exception

# Configure logger for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/library", tags=["library"])


class AuthorRequest(BaseModel):
    """Request model for creating or updating an author."""

    name: str
    photo: Optional[str] = None


class ReassignRequest(BaseModel):
    """Request model for moving books from one author name to another."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    old_name: str
    new_name: str


class RegistryEntryRequest(BaseModel):
    name: str


async def _locked_library(
    key: str = Depends(get_storage_key),
    registry: LibraryRegistry = Depends(get_library_registry),
):
    """Yield the namespace's library while holding its write lock."""
    async with registry.lock(key):
        yield await registry.get(key)


# ------------------------- Books ------------------------- #


@router.get("/books", response_model=List[Dict[str, Any]])
async def list_books(
    search: Optional[str] = Query(None, description="Case-insensitive title/author search"),
    author: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    publisher: Optional[str] = Query(None),
    sort: SortKey = Query("title"),
    direction: SortDirection = Query("asc"),
    library: LibraryService = Depends(get_library),
):
    """
    List books, optionally filtered and sorted.
    """
    books = filter_books(
        library.books,
        search=search,
        author=author or None,
        status=status or None,
        language=language or None,
        publisher=publisher or None,
    )
    return [book.to_wire() for book in sort_books(books, sort, direction)]


@router.get("/books/{book_id}")
async def get_book(book_id: str, library: LibraryService = Depends(get_library)):
    book = library.get_book(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail=f"Book {book_id} not found")
    return book.to_wire()


@router.post("/books", status_code=201)
async def add_book(request: BookCreate, library: LibraryService = Depends(_locked_library)):
    """
    Add a book. The id is generated by the server.

    Raises:
        HTTPException: 400 if the book fails validation
    """
    try:
        book = await library.add_book(request)
    except LibraryError as e:
        raise to_http_exception(e)
    return book.to_wire()


@router.patch("/books/{book_id}")
async def update_book(
    book_id: str, request: BookUpdate, library: LibraryService = Depends(_locked_library)
):
    try:
        book = await library.update_book(book_id, request)
    except LibraryError as e:
        raise to_http_exception(e)
    return book.to_wire()


@router.delete("/books/{book_id}")
async def delete_book(book_id: str, library: LibraryService = Depends(_locked_library)):
    try:
        deleted = await library.delete_book(book_id)
    except LibraryError as e:
        raise to_http_exception(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Book {book_id} not found")
    return {"message": "Book deleted successfully", "id": book_id}


# ------------------------- Authors ------------------------- #


@router.get("/authors", response_model=List[Dict[str, Any]])
async def list_authors(
    sort: Optional[AuthorSortOrder] = Query(None, description="asc, desc or none"),
    library: LibraryService = Depends(get_library),
):
    """
    List authors. ``sort`` orders this response only; without it the
    library's default order applies.
    """
    authors = library.authors if sort is None else library.sorted_authors(sort)
    return [author.to_wire() for author in authors]


@router.post("/authors", status_code=201)
async def add_author(request: AuthorRequest, library: LibraryService = Depends(_locked_library)):
    try:
        author = await library.add_author(request.name, request.photo)
    except LibraryError as e:
        raise to_http_exception(e)

    if author is None:
        return {"message": "Author already exists", "created": False}
    return {"message": "Author created", "created": True, "author": author.to_wire()}


@router.put("/authors/{author_id}")
async def update_author(
    author_id: str, request: AuthorRequest, library: LibraryService = Depends(_locked_library)
):
    """
    Rename an author and/or replace the photo. Renames are applied to the
    author's books in the same save.
    """
    try:
        author = await library.update_author(author_id, request.name, request.photo)
    except LibraryError as e:
        raise to_http_exception(e)
    return author.to_wire()


@router.delete("/authors/{author_id}")
async def delete_author(author_id: str, library: LibraryService = Depends(_locked_library)):
    """
    Delete an author.

    Raises:
        HTTPException: 409 if books still reference the author
    """
    try:
        await library.delete_author(author_id)
    except LibraryError as e:
        raise to_http_exception(e)
    return {"message": "Author deleted successfully", "id": author_id}


@router.get("/orphans")
async def get_orphans(library: LibraryService = Depends(get_library)):
    """Author names used by books but missing from the author list."""
    return {"orphans": library.check_orphans()}


@router.post("/reassign")
async def reassign_books(
    request: ReassignRequest, library: LibraryService = Depends(_locked_library)
):
    try:
        count = await library.reassign_books(request.old_name, request.new_name)
    except LibraryError as e:
        raise to_http_exception(e)
    return {"reassigned": count}


# ------------------------- Registries ------------------------- #


@router.get("/languages")
async def list_languages(library: LibraryService = Depends(get_library)):
    return {"languages": library.languages}


@router.post("/languages")
async def add_language(
    request: RegistryEntryRequest, library: LibraryService = Depends(_locked_library)
):
    try:
        added = await library.add_language(request.name)
    except LibraryError as e:
        raise to_http_exception(e)
    return {"added": added, "languages": library.languages}


@router.delete("/languages/{name}")
async def delete_language(name: str, library: LibraryService = Depends(_locked_library)):
    try:
        deleted = await library.delete_language(name)
    except LibraryError as e:
        raise to_http_exception(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Language {name!r} not found")
    return {"languages": library.languages}


@router.get("/publishers")
async def list_publishers(library: LibraryService = Depends(get_library)):
    return {"publishers": library.publishers}


@router.post("/publishers")
async def add_publisher(
    request: RegistryEntryRequest, library: LibraryService = Depends(_locked_library)
):
    try:
        added = await library.add_publisher(request.name)
    except LibraryError as e:
        raise to_http_exception(e)
    return {"added": added, "publishers": library.publishers}


@router.delete("/publishers/{name}")
async def delete_publisher(name: str, library: LibraryService = Depends(_locked_library)):
    try:
        deleted = await library.delete_publisher(name)
    except LibraryError as e:
        raise to_http_exception(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Publisher {name!r} not found")
    return {"publishers": library.publishers}
