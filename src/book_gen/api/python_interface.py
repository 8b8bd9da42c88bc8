"""Python-first interface for exchange files and API interactions."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx

from book_gen.api.contracts import (
    BookCreateRequest,
    BookResponse,
    BookSummaryResponse,
    CharacterUsageResponse,
    DemoteRequest,
    GalleryReconcileResponse,
    LayoutResponse,
    MigrationResponse,
    PromoteRequest,
    StoryCreateRequest,
    StoryResponse,
    ValidationResponse,
)
from book_gen.core.exchange_codec import load_exchange_json, save_exchange_json


class BookApiClient:
    """Tiny typed API client for Python users."""

    def __init__(self, api_base_url: str = "http://127.0.0.1:8000") -> None:
        self._api_base_url = api_base_url.rstrip("/")

    @property
    def api_base_url(self) -> str:
        return self._api_base_url

    def _books_url(self, suffix: str = "") -> str:
        return f"{self._api_base_url}/api/v1/books{suffix}"

    def list_books(self) -> list[BookSummaryResponse]:
        response = httpx.get(self._books_url(), timeout=30.0)
        response.raise_for_status()
        return [BookSummaryResponse.model_validate(item) for item in response.json()]

    def create_book(
        self,
        *,
        title: str,
        description: str | None = None,
        background_setup: str | None = None,
        aspect_ratio: str | None = None,
    ) -> BookResponse:
        """Create an empty book."""
        request = BookCreateRequest(
            title=title,
            description=description,
            background_setup=background_setup,
            aspect_ratio=aspect_ratio,
        )
        response = httpx.post(
            self._books_url(),
            json=request.model_dump(mode="json"),
            timeout=30.0,
        )
        response.raise_for_status()
        return BookResponse.model_validate(response.json())

    def get_book(self, book_id: str) -> BookResponse:
        response = httpx.get(self._books_url(f"/{book_id}"), timeout=30.0)
        response.raise_for_status()
        return BookResponse.model_validate(response.json())

    def validate_book(self, book_id: str) -> ValidationResponse:
        response = httpx.get(self._books_url(f"/{book_id}/validation"), timeout=30.0)
        response.raise_for_status()
        return ValidationResponse.model_validate(response.json())

    def create_story(
        self,
        *,
        book_id: str,
        title: str,
        background_setup: str,
        description: str | None = None,
    ) -> StoryResponse:
        request = StoryCreateRequest(
            title=title,
            background_setup=background_setup,
            description=description,
        )
        response = httpx.post(
            self._books_url(f"/{book_id}/stories"),
            json=request.model_dump(mode="json"),
            timeout=30.0,
        )
        response.raise_for_status()
        return StoryResponse.model_validate(response.json())

    def scene_layout(self, *, book_id: str, story_id: str, scene_id: str) -> LayoutResponse:
        """Fetch the effective layout of one scene."""
        response = httpx.get(
            self._books_url(f"/{book_id}/stories/{story_id}/scenes/{scene_id}/layout"),
            timeout=30.0,
        )
        response.raise_for_status()
        return LayoutResponse.model_validate(response.json())

    def character_usage(self, *, book_id: str, character_name: str) -> CharacterUsageResponse:
        response = httpx.get(
            self._books_url(f"/{book_id}/characters/{character_name}/usage"),
            timeout=30.0,
        )
        response.raise_for_status()
        return CharacterUsageResponse.model_validate(response.json())

    def promote_character(
        self, *, book_id: str, story_id: str, character_name: str
    ) -> MigrationResponse:
        """Move a story character into the book cast."""
        request = PromoteRequest(story_id=story_id, character_name=character_name)
        response = httpx.post(
            self._books_url(f"/{book_id}/characters/promote"),
            json=request.model_dump(mode="json"),
            timeout=60.0,
        )
        response.raise_for_status()
        return MigrationResponse.model_validate(response.json())

    def demote_character(
        self,
        *,
        book_id: str,
        character_name: str,
        target_story_id: str | None = None,
    ) -> MigrationResponse:
        """Move a book character into one story."""
        request = DemoteRequest(character_name=character_name, target_story_id=target_story_id)
        response = httpx.post(
            self._books_url(f"/{book_id}/characters/demote"),
            json=request.model_dump(mode="json"),
            timeout=60.0,
        )
        response.raise_for_status()
        return MigrationResponse.model_validate(response.json())

    def reconcile_gallery(
        self,
        *,
        book_id: str,
        character_name: str,
        story_id: str | None = None,
    ) -> GalleryReconcileResponse:
        params = {"story_id": story_id} if story_id is not None else None
        response = httpx.post(
            self._books_url(f"/{book_id}/characters/{character_name}/gallery/reconcile"),
            params=params,
            timeout=60.0,
        )
        response.raise_for_status()
        return GalleryReconcileResponse.model_validate(response.json())

    def export_book(self, book_id: str, *, include_image_history: bool = False) -> dict[str, Any]:
        response = httpx.get(
            self._books_url(f"/{book_id}/export"),
            params={"include_image_history": str(include_image_history).lower()},
            timeout=30.0,
        )
        response.raise_for_status()
        payload: dict[str, Any] = response.json()
        return payload

    def import_book(self, payload: dict[str, Any]) -> BookResponse:
        """Create a new book from an exchange document."""
        response = httpx.post(self._books_url("/import"), json=payload, timeout=30.0)
        response.raise_for_status()
        return BookResponse.model_validate(response.json())

    def export_book_to_file(
        self, book_id: str, path: Path, *, include_image_history: bool = False
    ) -> Path:
        """Download an exchange document and write it as readable JSON."""
        save_exchange_json(path, self.export_book(book_id, include_image_history=include_image_history))
        return path

    def import_book_from_file(self, path: Path) -> BookResponse:
        return self.import_book(load_exchange_json(path))


__all__ = [
    "BookApiClient",
    "load_exchange_json",
    "save_exchange_json",
]
