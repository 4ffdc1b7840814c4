"""
API tests for the FastAPI app using TestClient.

Each test gets its own registry and store in a temporary directory.
"""

import json

import pytest
from fastapi.testclient import TestClient

from main import app
from myshelf.services.library_registry import LibraryRegistry, get_library_registry
from myshelf.services.library_store import LibraryStore


@pytest.fixture
def client(tmp_path):
    store = LibraryStore(db_path=str(tmp_path / "api.db"), legacy_dir=str(tmp_path / "legacy"))
    registry = LibraryRegistry(store)
    app.dependency_overrides[get_library_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


def new_book(**overrides):
    book = {
        "title": "Kindred",
        "author": "Octavia E. Butler",
        "language": "English",
        "pages": 264,
        "publisher": "Doubleday",
        "price": 9.99,
        "purchaseDate": "2020-08-01",
    }
    book.update(overrides)
    return book


def create_author(client, name, headers=None):
    response = client.post("/library/authors", json={"name": name}, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestRoot:
    def test_root(self, client):
        assert client.get("/").json() == {"message": "My Shelf API", "status": "running"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_unknown_route_passes_through_logging(self, client):
        assert client.get("/nope").status_code == 404


class TestBooksApi:
    """Tests for the book endpoints."""

    def test_create_and_list_books(self, client):
        create_author(client, "Octavia E. Butler")

        created = client.post("/library/books", json=new_book())
        assert created.status_code == 201
        book = created.json()
        assert book["id"]
        assert book["status"] == "To Read"

        listed = client.get("/library/books").json()
        assert [b["id"] for b in listed] == [book["id"]]
        assert client.get(f"/library/books/{book['id']}").json()["title"] == "Kindred"

    def test_invalid_book_returns_400(self, client):
        create_author(client, "Octavia E. Butler")
        response = client.post("/library/books", json=new_book(pages=0))
        assert response.status_code == 400
        assert "invalid pages" in response.json()["detail"]

    def test_missing_required_field_returns_422(self, client):
        body = new_book()
        del body["title"]
        assert client.post("/library/books", json=body).status_code == 422

    def test_update_and_delete_book(self, client):
        create_author(client, "Octavia E. Butler")
        book_id = client.post("/library/books", json=new_book()).json()["id"]

        patched = client.patch(f"/library/books/{book_id}", json={"status": "Reading"})
        assert patched.status_code == 200
        assert patched.json()["status"] == "Reading"

        assert client.delete(f"/library/books/{book_id}").status_code == 200
        assert client.get(f"/library/books/{book_id}").status_code == 404
        assert client.delete(f"/library/books/{book_id}").status_code == 404

    def test_update_missing_book_returns_404(self, client):
        assert client.patch("/library/books/nope", json={"title": "x"}).status_code == 404

    def test_filter_and_sort(self, client):
        create_author(client, "Octavia E. Butler")
        client.post("/library/books", json=new_book(title="Kindred", price=9.99))
        client.post("/library/books", json=new_book(title="Dawn", price=15, language="French"))

        by_price = client.get("/library/books", params={"sort": "price", "direction": "desc"})
        assert [b["title"] for b in by_price.json()] == ["Dawn", "Kindred"]

        french = client.get("/library/books", params={"language": "French"})
        assert [b["title"] for b in french.json()] == ["Dawn"]


class TestAuthorsApi:
    """Tests for the author endpoints."""

    def test_duplicate_author(self, client):
        create_author(client, "Octavia E. Butler")
        body = create_author(client, "octavia e. butler")
        assert body["created"] is False

    def test_rename_cascades(self, client):
        author = create_author(client, "Octavia Butler")["author"]
        client.post("/library/books", json=new_book(author="Octavia Butler"))

        response = client.put(
            f"/library/authors/{author['id']}", json={"name": "Octavia E. Butler"}
        )

        assert response.status_code == 200
        assert [b["author"] for b in client.get("/library/books").json()] == ["Octavia E. Butler"]
        assert client.get("/library/orphans").json() == {"orphans": []}

    def test_delete_referenced_author_returns_409(self, client):
        author = create_author(client, "Octavia E. Butler")["author"]
        client.post("/library/books", json=new_book())

        response = client.delete(f"/library/authors/{author['id']}")

        assert response.status_code == 409
        assert "1 book(s)" in response.json()["detail"]

    def test_delete_missing_author_returns_404(self, client):
        assert client.delete("/library/authors/nope").status_code == 404

    def test_author_sort(self, client):
        create_author(client, "Ursula K. Le Guin")
        create_author(client, "Octavia E. Butler")

        names = [a["name"] for a in client.get("/library/authors", params={"sort": "desc"}).json()]
        assert names == ["Ursula K. Le Guin", "Octavia E. Butler"]

        default = [a["name"] for a in client.get("/library/authors").json()]
        assert default == ["Octavia E. Butler", "Ursula K. Le Guin"]

    def test_reassign(self, client):
        client.post("/library/books", json=new_book(author="Lost Author"))
        assert client.get("/library/orphans").json() == {"orphans": ["Lost Author"]}

        response = client.post(
            "/library/reassign", json={"oldName": "Lost Author", "newName": "Octavia E. Butler"}
        )

        assert response.json() == {"reassigned": 1}
        assert client.get("/library/orphans").json() == {"orphans": ["Octavia E. Butler"]}


class TestRegistriesAndSettingsApi:
    def test_languages(self, client):
        assert client.post("/library/languages", json={"name": "English"}).json() == {
            "added": True,
            "languages": ["English"],
        }
        assert client.post("/library/languages", json={"name": "english"}).json()["added"] is False
        assert client.delete("/library/languages/English").json() == {"languages": []}
        assert client.delete("/library/languages/English").status_code == 404

    def test_publishers(self, client):
        client.post("/library/publishers", json={"name": "Tor"})
        assert client.get("/library/publishers").json() == {"publishers": ["Tor"]}

    def test_settings(self, client):
        body = client.get("/settings").json()
        assert body["settings"] == {"currency": "$"}
        assert {"symbol": "€", "name": "Euro"} in body["supportedCurrencies"]

        assert client.put("/settings", json={"currency": "€"}).json() == {
            "settings": {"currency": "€"}
        }
        assert client.put("/settings", json={"currency": "XYZ"}).status_code == 400


class TestNamespacesApi:
    def test_users_do_not_share_data(self, client):
        alice = {"X-User-Id": "alice"}
        client.post("/library/languages", json={"name": "English"}, headers=alice)

        assert client.get("/library/languages", headers=alice).json() == {"languages": ["English"]}
        assert client.get("/library/languages").json() == {"languages": []}
        assert client.get("/library/languages", headers={"X-User-Id": "bob"}).json() == {
            "languages": []
        }


class TestBackupApi:
    def test_export_and_import(self, client):
        create_author(client, "Octavia E. Butler")
        client.post("/library/books", json=new_book())

        exported = client.get("/backup/export")
        assert exported.status_code == 200
        assert "my-shelf-backup-" in exported.headers["content-disposition"]

        bob = {"X-User-Id": "bob"}
        imported = client.post("/backup/import", content=exported.content, headers=bob)

        assert imported.json() == {
            "message": "Backup imported successfully",
            "books": 1,
            "authors": 1,
        }
        assert len(client.get("/library/books", headers=bob).json()) == 1

    def test_import_replaces_cached_library(self, client):
        client.post("/library/languages", json={"name": "English"})

        client.post("/backup/import", content=json.dumps({"books": [], "languages": ["Latin"]}))

        assert client.get("/library/languages").json() == {"languages": ["Latin"]}

    def test_invalid_import_returns_400(self, client):
        response = client.post("/backup/import", content=b'{"authors": []}')
        assert response.status_code == 400
        assert "books" in response.json()["detail"]


class TestInsightsApi:
    def test_reading_metrics_shape(self, client):
        body = client.get("/insights/reading").json()

        assert body["streak"] == {"longestStreak": 0, "currentStreak": 0}
        assert body["consistency"] == {"score": 0, "label": "Needs Discipline"}
        assert body["momentum"]["trend"] == "flat"

    def test_summary_includes_currency(self, client):
        create_author(client, "Octavia E. Butler")
        client.post("/library/books", json=new_book(price=10))

        body = client.get("/insights/summary").json()

        assert body["totalBooks"] == 1
        assert body["totalValue"] == 10
        assert body["currency"] == "$"

    def test_collection_breakdown(self, client):
        create_author(client, "Octavia E. Butler")
        client.post("/library/books", json=new_book())

        body = client.get("/insights/collection").json()

        assert body["byStatus"] == [{"name": "To Read", "value": 1}]
        assert body["purchasesPerYear"] == [{"year": "2020", "count": 1}]
        assert body["readingPace"] is None
