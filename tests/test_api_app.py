from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from fastapi.testclient import TestClient

from book_gen.adapters.sqlite_asset_store import SQLiteAssetStore
from book_gen.adapters.sqlite_book_store import SQLiteBookStore
from book_gen.api.app import create_app
from book_gen.domain.models import Book, Character, ImageRecord, Scene, Story
from book_gen.domain.ports import book_scope, story_scope


def _client(tmp_path: Path) -> TestClient:
    return TestClient(create_app(db_path=tmp_path / "book_gen.db"))


def _seed_shared_cast(tmp_path: Path) -> Book:
    book = Book(title="B")
    book.add_character(Character(name="Mentor"))
    for title in ("S1", "S2"):
        story = Story(title=title, background_setup="x")
        story.add_scene(Scene(title="A", description="a", characters=["Mentor"]))
        book.add_story(story)
    SQLiteBookStore(db_path=tmp_path / "book_gen.db").save(book)
    return book


def _seed_hero(tmp_path: Path) -> tuple[Book, Story]:
    book = Book(title="B")
    story = Story(title="S1", background_setup="x")
    story.add_character(Character(name="Hero", image_gallery=[ImageRecord(id="h1")]))
    story.add_scene(Scene(title="A", description="a", characters=["Hero"]))
    book.add_story(story)
    SQLiteBookStore(db_path=tmp_path / "book_gen.db").save(book)
    asyncio.run(
        SQLiteAssetStore(db_path=tmp_path / "book_gen.db").store(
            story_scope(story.id), "Hero", "h1", b"png", "unknown"
        )
    )
    return book, story


def test_healthz_and_api_root(tmp_path: Path) -> None:
    client = _client(tmp_path)
    assert client.get("/healthz").json() == {"status": "ok", "service": "book_gen"}
    root = client.get("/api/v1").json()
    assert root["name"] == "book_gen"
    assert "/api/v1/books/{book_id}/characters/promote" in root["endpoints"]


def test_book_crud_flow(tmp_path: Path) -> None:
    client = _client(tmp_path)
    created = client.post("/api/v1/books", json={"title": "B", "aspect_ratio": "1:1"})
    assert created.status_code == 201
    book_id = created.json()["book_id"]
    assert created.json()["document"]["aspectRatio"] == "1:1"

    updated = client.put(f"/api/v1/books/{book_id}", json={"description": "Words"})
    assert updated.status_code == 200
    assert updated.json()["description"] == "Words"

    listed = client.get("/api/v1/books").json()
    assert [item["book_id"] for item in listed] == [book_id]

    assert client.delete(f"/api/v1/books/{book_id}").status_code == 204
    assert client.get(f"/api/v1/books/{book_id}").status_code == 404
    assert client.delete(f"/api/v1/books/{book_id}").status_code == 404


def test_create_book_rejects_unknown_aspect_ratio(tmp_path: Path) -> None:
    response = _client(tmp_path).post("/api/v1/books", json={"title": "B", "aspect_ratio": "5:7"})
    assert response.status_code == 422


def test_story_creation_validation_and_layout(tmp_path: Path) -> None:
    client = _client(tmp_path)
    book_id = client.post("/api/v1/books", json={"title": "B"}).json()["book_id"]

    story = client.post(
        f"/api/v1/books/{book_id}/stories",
        json={"title": "S1", "background_setup": "Harbor"},
    )
    assert story.status_code == 201
    assert story.json()["scene_count"] == 0

    validation = client.get(f"/api/v1/books/{book_id}/validation").json()
    assert validation == {"is_valid": True, "errors": [], "warnings": []}

    missing = client.get(
        f"/api/v1/books/{book_id}/stories/{story.json()['story_id']}/scenes/nope/layout"
    )
    assert missing.status_code == 404


def test_scene_layout_reports_source(tmp_path: Path) -> None:
    book, story = _seed_hero(tmp_path)
    response = _client(tmp_path).get(
        f"/api/v1/books/{book.id}/stories/{story.id}/scenes/{story.scenes[0].id}/layout"
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["source"] == "default"
    assert payload["description"] == "System default (overlay)"
    assert payload["layout"]["canvas"] == {"width": 1080, "height": 1920, "aspectRatio": "9:16"}


def test_promote_and_demote_move_assets(tmp_path: Path) -> None:
    book, story = _seed_hero(tmp_path)
    client = _client(tmp_path)

    promoted = client.post(
        f"/api/v1/books/{book.id}/characters/promote",
        json={"story_id": story.id, "character_name": "hero"},
    )
    assert promoted.status_code == 200
    assert promoted.json()["assets_migrated"] == 1
    assert promoted.json()["target_scope"] == book_scope(book.id)

    usage = client.get(f"/api/v1/books/{book.id}/characters/Hero/usage").json()
    assert usage["total_scene_count"] == 1

    demoted = client.post(
        f"/api/v1/books/{book.id}/characters/demote", json={"character_name": "Hero"}
    )
    assert demoted.status_code == 200
    assert demoted.json()["target_story_id"] == story.id
    assets = SQLiteAssetStore(db_path=tmp_path / "book_gen.db")
    assert asyncio.run(assets.get(story_scope(story.id), "Hero", "h1")) == b"png"
    assert asyncio.run(assets.get(book_scope(book.id), "Hero", "h1")) is None


def test_migration_errors_map_to_http_status(tmp_path: Path) -> None:
    book = _seed_shared_cast(tmp_path)
    client = _client(tmp_path)

    ambiguous = client.post(
        f"/api/v1/books/{book.id}/characters/demote", json={"character_name": "Mentor"}
    )
    assert ambiguous.status_code == 409
    detail: dict[str, Any] = ambiguous.json()["detail"]
    assert detail["code"] == "AmbiguousTarget"
    assert [item["scene_count"] for item in detail["stories_using"]] == [1, 1]

    not_in_story = client.post(
        f"/api/v1/books/{book.id}/characters/promote",
        json={"story_id": book.stories[0].id, "character_name": "Mentor"},
    )
    assert not_in_story.status_code == 404

    missing = client.post(
        "/api/v1/books/missing/characters/demote", json={"character_name": "Mentor"}
    )
    assert missing.status_code == 404
    assert missing.json()["detail"]["message"] == "Book not found"


def test_gallery_reconcile_endpoint(tmp_path: Path) -> None:
    book, story = _seed_hero(tmp_path)
    client = _client(tmp_path)
    url = f"/api/v1/books/{book.id}/characters/Hero/gallery/reconcile"

    kept = client.post(url, params={"story_id": story.id})
    assert kept.status_code == 200
    assert kept.json()["removed_ids"] == []

    asyncio.run(
        SQLiteAssetStore(db_path=tmp_path / "book_gen.db").delete(story_scope(story.id), "Hero", "h1")
    )
    dropped = client.post(url, params={"story_id": story.id})
    assert dropped.json()["removed_ids"] == ["h1"]

    assert client.post(url).status_code == 404


def test_export_and_import_round_trip(tmp_path: Path) -> None:
    book, _ = _seed_hero(tmp_path)
    client = _client(tmp_path)

    exported = client.get(f"/api/v1/books/{book.id}/export")
    assert exported.status_code == 200
    assert "id" not in exported.json()["book"]

    imported = client.post("/api/v1/books/import", json=exported.json())
    assert imported.status_code == 201
    assert imported.json()["book_id"] != book.id
    assert imported.json()["story_count"] == 1

    invalid = client.post("/api/v1/books/import", json={"book": {}})
    assert invalid.status_code == 422
