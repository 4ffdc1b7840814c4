"""Shared fixtures for the library tests."""

import base64
import io

import pytest
from PIL import Image

from myshelf.models.library_models import Author, Book
from myshelf.services.library_store import LibraryStore


def _encode(image_format: str, mime_type: str, size=(4, 4), color="red") -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


@pytest.fixture
def png_data_url():
    return _encode("PNG", "image/png")


@pytest.fixture
def jpeg_data_url():
    return _encode("JPEG", "image/jpeg")


@pytest.fixture
def webp_data_url():
    return _encode("WEBP", "image/webp")


@pytest.fixture
def corrupt_png_data_url():
    """Passes the prefix and size checks but is not a decodable image."""
    payload = base64.b64encode(b"\x89PNG\r\n\x1a\nthis is not really a png").decode("ascii")
    return f"data:image/png;base64,{payload}"


@pytest.fixture
def store(tmp_path):
    """A store backed by a temporary database and legacy directory."""
    return LibraryStore(
        db_path=str(tmp_path / "data" / "shelf.db"),
        legacy_dir=str(tmp_path / "legacy"),
    )


@pytest.fixture
def make_book():
    """Factory for valid wire-format book dicts."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        book = {
            "id": f"book-{counter['n']}",
            "title": f"Book {counter['n']}",
            "author": "Ursula K. Le Guin",
            "language": "English",
            "pages": 300,
            "publisher": "Ace",
            "purchaseDate": "2023-05-01",
            "publishDate": "1969-03-01",
            "price": 12.5,
            "status": "To Read",
        }
        book.update(overrides)
        return book

    return _make


@pytest.fixture
def make_author():
    counter = {"n": 0}

    def _make(name, **overrides):
        counter["n"] += 1
        author = {"id": f"author-{counter['n']}", "name": name}
        author.update(overrides)
        return author

    return _make


@pytest.fixture
def book_model(make_book):
    def _make(**overrides):
        return Book.model_validate(make_book(**overrides))

    return _make


@pytest.fixture
def author_model(make_author):
    def _make(name, **overrides):
        return Author.model_validate(make_author(name, **overrides))

    return _make
