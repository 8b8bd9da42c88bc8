"""Ports for book persistence and binary asset storage."""

from __future__ import annotations

from typing import Protocol

from book_gen.domain.models import Book

BOOK_SCOPE_PREFIX = "book:"


def book_scope(book_id: str) -> str:
    """Asset scope of a book-level gallery."""
    return f"{BOOK_SCOPE_PREFIX}{book_id}"


def story_scope(story_id: str) -> str:
    """Asset scope of a story-level gallery (the bare story id)."""
    return story_id


def is_book_scope(scope: str) -> bool:
    return scope.startswith(BOOK_SCOPE_PREFIX)


class AssetStore(Protocol):
    """Key-value blob store for image bytes, keyed by scope, owner name, and asset id."""

    async def store(
        self,
        scope: str,
        entity_name: str,
        asset_id: str,
        data: bytes,
        model_tag: str,
    ) -> None:
        ...

    async def get(self, scope: str, entity_name: str, asset_id: str) -> bytes | None:
        ...

    async def get_all(
        self, scope: str, entity_name: str, asset_ids: list[str]
    ) -> dict[str, bytes]:
        ...

    async def delete(self, scope: str, entity_name: str, asset_id: str) -> None:
        ...


class BookRepository(Protocol):
    """Persists and loads whole book aggregates."""

    def save(self, book: Book) -> None:
        ...

    def get(self, book_id: str) -> Book | None:
        ...

    def list_books(self) -> list[Book]:
        ...

    def delete(self, book_id: str) -> bool:
        ...
