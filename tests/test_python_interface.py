from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
import pytest

from book_gen.api.python_interface import BookApiClient


def _book_payload(book_id: str = "b1") -> dict[str, Any]:
    return {
        "book_id": book_id,
        "title": "B",
        "description": None,
        "aspect_ratio": "9:16",
        "story_count": 0,
        "character_count": 0,
        "created_at": "2026-01-01T00:00:00Z",
        "updated_at": "2026-01-01T00:00:00Z",
        "document": {},
    }


def test_create_book_posts_contract_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}

    def fake_post(url: str, json: object, timeout: float) -> httpx.Response:
        seen["url"] = url
        seen["json"] = json
        return httpx.Response(status_code=201, request=httpx.Request("POST", url), json=_book_payload())

    monkeypatch.setattr("book_gen.api.python_interface.httpx.post", fake_post)
    client = BookApiClient(api_base_url="http://127.0.0.1:8000/")
    created = client.create_book(title="  B  ")

    assert seen["url"] == "http://127.0.0.1:8000/api/v1/books"
    assert seen["json"] == {
        "title": "B",
        "description": None,
        "background_setup": None,
        "aspect_ratio": None,
    }
    assert created.book_id == "b1"


def test_demote_surfaces_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(url: str, json: object, timeout: float) -> httpx.Response:
        return httpx.Response(
            status_code=409,
            request=httpx.Request("POST", url),
            json={"detail": {"code": "AmbiguousTarget"}},
        )

    monkeypatch.setattr("book_gen.api.python_interface.httpx.post", fake_post)
    client = BookApiClient()
    with pytest.raises(httpx.HTTPStatusError):
        client.demote_character(book_id="b1", character_name="Mentor")


def test_promote_parses_migration_response(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(url: str, json: object, timeout: float) -> httpx.Response:
        assert url.endswith("/api/v1/books/b1/characters/promote")
        assert json == {"story_id": "s1", "character_name": "Hero"}
        return httpx.Response(
            status_code=200,
            request=httpx.Request("POST", url),
            json={
                "success": True,
                "character_name": "Hero",
                "source_scope": "s1",
                "target_scope": "book:b1",
                "assets_migrated": 2,
            },
        )

    monkeypatch.setattr("book_gen.api.python_interface.httpx.post", fake_post)
    result = BookApiClient().promote_character(book_id="b1", story_id="s1", character_name="Hero")
    assert result.target_scope == "book:b1"
    assert result.asset_failures == []


def test_export_book_to_file_writes_exchange_json(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    exchange = {"book": {"title": "B"}, "stories": []}

    def fake_get(url: str, params: dict[str, str], timeout: float) -> httpx.Response:
        assert params == {"include_image_history": "true"}
        return httpx.Response(status_code=200, request=httpx.Request("GET", url), json=exchange)

    def fake_post(url: str, json: object, timeout: float) -> httpx.Response:
        assert json == exchange
        return httpx.Response(status_code=201, request=httpx.Request("POST", url), json=_book_payload("b2"))

    monkeypatch.setattr("book_gen.api.python_interface.httpx.get", fake_get)
    monkeypatch.setattr("book_gen.api.python_interface.httpx.post", fake_post)
    client = BookApiClient()
    path = client.export_book_to_file("b1", tmp_path / "out" / "b1.json", include_image_history=True)

    assert path.exists()
    assert client.import_book_from_file(path).book_id == "b2"
