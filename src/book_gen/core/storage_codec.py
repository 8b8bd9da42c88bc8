"""Full-fidelity storage codec for book aggregates.

The storage payload carries everything the system needs to restore a book
exactly: identifiers, timestamps, image history, character galleries, and
layout overrides at every tier. ``encode_book(decode_book(payload))`` returns
``payload`` unchanged for any payload produced by ``encode_book``.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Final, Literal

from pydantic import Field

from book_gen.core.book_schema import (
    BookStyleSchema,
    CharacterSchema,
    DiagramPanelSchema,
    ElementSchema,
    ImageRecordSchema,
    SceneLayoutSchema,
    SchemaModel,
    optional_layout,
    optional_layout_domain,
)
from book_gen.domain.models import DEFAULT_ASPECT_RATIO, Book, Scene, Story

STORAGE_SCHEMA_VERSION: Final[Literal["book_storage.v1"]] = "book_storage.v1"


class StoredScene(SchemaModel):
    id: str = Field(min_length=1)
    title: str
    description: str
    text_panel: str | None = None
    diagram_panel: DiagramPanelSchema | None = None
    layout: SceneLayoutSchema | None = None
    characters: list[str] = Field(default_factory=list)
    elements: list[str] = Field(default_factory=list)
    image_history: list[ImageRecordSchema] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, scene: Scene) -> StoredScene:
        return cls(
            id=scene.id,
            title=scene.title,
            description=scene.description,
            text_panel=scene.text_panel,
            diagram_panel=(
                DiagramPanelSchema.from_domain(scene.diagram_panel)
                if scene.diagram_panel is not None
                else None
            ),
            layout=optional_layout(scene.layout),
            characters=list(scene.characters),
            elements=list(scene.elements),
            image_history=[ImageRecordSchema.from_domain(r) for r in scene.image_history],
            created_at=scene.created_at,
            updated_at=scene.updated_at,
        )

    def to_domain(self) -> Scene:
        return Scene(
            id=self.id,
            title=self.title,
            description=self.description,
            text_panel=self.text_panel,
            diagram_panel=self.diagram_panel.to_domain() if self.diagram_panel else None,
            layout=optional_layout_domain(self.layout),
            characters=list(self.characters),
            elements=list(self.elements),
            image_history=[record.to_domain() for record in self.image_history],
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class StoredStory(SchemaModel):
    id: str = Field(min_length=1)
    title: str
    description: str | None = None
    background_setup: str
    characters: list[CharacterSchema] = Field(default_factory=list)
    elements: list[ElementSchema] = Field(default_factory=list)
    scenes: list[StoredScene] = Field(default_factory=list)
    layout: SceneLayoutSchema | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, story: Story) -> StoredStory:
        return cls(
            id=story.id,
            title=story.title,
            description=story.description,
            background_setup=story.background_setup,
            characters=[CharacterSchema.from_domain(c) for c in story.characters],
            elements=[ElementSchema.from_domain(e) for e in story.elements],
            scenes=[StoredScene.from_domain(scene) for scene in story.scenes],
            layout=optional_layout(story.layout),
            created_at=story.created_at,
            updated_at=story.updated_at,
        )

    def to_domain(self) -> Story:
        return Story(
            id=self.id,
            title=self.title,
            description=self.description,
            background_setup=self.background_setup,
            characters=[character.to_domain() for character in self.characters],
            elements=[element.to_domain() for element in self.elements],
            scenes=[scene.to_domain() for scene in self.scenes],
            layout=optional_layout_domain(self.layout),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class StoredBook(SchemaModel):
    """Top-level persisted book document."""

    schema_version: Literal["book_storage.v1"] = STORAGE_SCHEMA_VERSION
    id: str = Field(min_length=1)
    title: str
    description: str | None = None
    background_setup: str | None = None
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    style: BookStyleSchema
    default_layout: SceneLayoutSchema | None = None
    characters: list[CharacterSchema] = Field(default_factory=list)
    stories: list[StoredStory] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, book: Book) -> StoredBook:
        return cls(
            id=book.id,
            title=book.title,
            description=book.description,
            background_setup=book.background_setup,
            aspect_ratio=book.aspect_ratio,
            style=BookStyleSchema.from_domain(book.style),
            default_layout=optional_layout(book.default_layout),
            characters=[CharacterSchema.from_domain(c) for c in book.characters],
            stories=[StoredStory.from_domain(story) for story in book.stories],
            created_at=book.created_at,
            updated_at=book.updated_at,
        )

    def to_domain(self) -> Book:
        return Book(
            id=self.id,
            title=self.title,
            description=self.description,
            background_setup=self.background_setup,
            aspect_ratio=self.aspect_ratio,
            style=self.style.to_domain(),
            default_layout=optional_layout_domain(self.default_layout),
            characters=[character.to_domain() for character in self.characters],
            stories=[story.to_domain() for story in self.stories],
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def encode_book(book: Book) -> dict[str, Any]:
    """Encode a book into its JSON-compatible storage payload."""
    return StoredBook.from_domain(book).model_dump(mode="json", by_alias=True)


def decode_book(payload: dict[str, Any]) -> Book:
    return StoredBook.model_validate(payload).to_domain()


def dumps_book(book: Book) -> str:
    """Serialize a book to canonical storage JSON text."""
    return json.dumps(encode_book(book), ensure_ascii=False, sort_keys=True)


def loads_book(text: str) -> Book:
    return StoredBook.model_validate_json(text).to_domain()
