"""Book library service: validated persistence plus read-side helpers."""

from __future__ import annotations

import logging
from typing import Any

from book_gen.application.character_migration import CharacterUsage, compute_character_usage
from book_gen.core.exchange_codec import export_book, import_book, import_story
from book_gen.core.layout_resolver import effective_layout, layout_source
from book_gen.core.validation import ValidationResult, ensure_valid, validate_book, validate_story
from book_gen.domain.errors import NotFoundInScopeError
from book_gen.domain.models import Book, SceneLayout, Story
from book_gen.domain.ports import BookRepository

logger = logging.getLogger(__name__)


class BookLibrary:
    """Owns the validate-then-save rule for every book write."""

    def __init__(self, repository: BookRepository) -> None:
        self._repository = repository

    def list_books(self) -> list[Book]:
        return self._repository.list_books()

    def get_book(self, book_id: str) -> Book | None:
        return self._repository.get(book_id)

    def require_book(self, book_id: str) -> Book:
        book = self._repository.get(book_id)
        if book is None:
            raise NotFoundInScopeError("Book", book_id)
        return book

    def validate(self, book_id: str) -> ValidationResult:
        return validate_book(self.require_book(book_id))

    def save_book(self, book: Book) -> ValidationResult:
        """Validate and persist ``book``; raises ``ValidationFailedError`` on errors."""
        result = validate_book(book)
        ensure_valid(result)
        for warning in result.warnings:
            logger.warning("book.validation_warning book_id=%s warning=%s", book.id, warning)
        self._repository.save(book)
        logger.info("book.save book_id=%s stories=%s", book.id, len(book.stories))
        return result

    def create_book(
        self,
        *,
        title: str,
        description: str | None = None,
        background_setup: str | None = None,
        aspect_ratio: str | None = None,
    ) -> Book:
        book = Book(title=title, description=description, background_setup=background_setup)
        if aspect_ratio is not None:
            book.aspect_ratio = aspect_ratio
        self.save_book(book)
        return book

    def update_book(
        self,
        book_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        background_setup: str | None = None,
        aspect_ratio: str | None = None,
    ) -> Book:
        book = self.require_book(book_id)
        book.update(
            title=title,
            description=description,
            background_setup=background_setup,
            aspect_ratio=aspect_ratio,
        )
        self.save_book(book)
        return book

    def delete_book(self, book_id: str) -> bool:
        deleted = self._repository.delete(book_id)
        if deleted:
            logger.info("book.delete book_id=%s", book_id)
        return deleted

    def add_story(self, book_id: str, story: Story) -> Story:
        """Attach ``story`` to a book; the whole book must stay valid."""
        book = self.require_book(book_id)
        ensure_valid(validate_story(story, book.characters), subject="story")
        book.add_story(story)
        self.save_book(book)
        return story

    def import_story(self, book_id: str, payload: dict[str, Any]) -> Story:
        return self.add_story(book_id, import_story(payload))

    def export_book(self, book_id: str, *, include_image_history: bool = False) -> dict[str, Any]:
        return export_book(self.require_book(book_id), include_image_history=include_image_history)

    def import_book(self, payload: dict[str, Any]) -> Book:
        """Create a new book, with fresh identifiers, from an exchange payload."""
        book = import_book(payload)
        self.save_book(book)
        logger.info("book.import book_id=%s stories=%s", book.id, len(book.stories))
        return book

    def scene_layout(self, book_id: str, story_id: str, scene_id: str) -> tuple[SceneLayout, str]:
        """Return the effective layout of a scene and the tier it came from."""
        book = self.require_book(book_id)
        story = book.get_story(story_id)
        if story is None:
            raise NotFoundInScopeError("Story", story_id)
        scene = story.get_scene(scene_id)
        if scene is None:
            raise NotFoundInScopeError("Scene", scene_id)
        return effective_layout(scene, story, book), layout_source(scene, story, book)

    def character_usage(self, book_id: str, character_name: str) -> CharacterUsage:
        return compute_character_usage(self.require_book(book_id), character_name)
