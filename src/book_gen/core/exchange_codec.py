"""Portable exchange codec for importing and exporting books and stories.

Exchange payloads omit identifiers and timestamps. Importing always builds
fresh aggregates with newly generated identifiers, so an imported payload can
never overwrite a stored book.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ConfigDict, Field

from book_gen.core.book_schema import (
    IGNORE_UNKNOWN_KEYS,
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
from book_gen.domain.models import DEFAULT_ASPECT_RATIO, Book, BookStyle, Scene, Story


class ExchangeModel(SchemaModel):
    """Exchange payloads come from other systems; unknown keys are ignored at every depth."""

    model_config = ConfigDict(extra="ignore")


_LENIENT = {IGNORE_UNKNOWN_KEYS: True}


class SceneExchange(ExchangeModel):
    title: str
    description: str = ""
    text_panel: str | None = None
    diagram_panel: DiagramPanelSchema | None = None
    layout: SceneLayoutSchema | None = None
    characters: list[str] = Field(default_factory=list)
    elements: list[str] = Field(default_factory=list)
    image_history: list[ImageRecordSchema] | None = None


class StoryInfo(ExchangeModel):
    title: str
    background_setup: str = ""
    description: str | None = None
    layout: SceneLayoutSchema | None = None


class StoryExchange(ExchangeModel):
    story: StoryInfo
    characters: list[CharacterSchema] = Field(default_factory=list)
    elements: list[ElementSchema] = Field(default_factory=list)
    scenes: list[SceneExchange] = Field(default_factory=list)


class BookInfo(ExchangeModel):
    title: str
    description: str | None = None
    background_setup: str | None = None
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    style: BookStyleSchema | None = None
    default_layout: SceneLayoutSchema | None = None
    characters: list[CharacterSchema] = Field(default_factory=list)


class BookExchange(ExchangeModel):
    """Book-level export document."""

    book: BookInfo
    stories: list[StoryExchange] = Field(default_factory=list)


def _scene_exchange(scene: Scene, *, include_image_history: bool) -> SceneExchange:
    return SceneExchange(
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
        image_history=(
            [ImageRecordSchema.from_domain(record) for record in scene.image_history]
            if include_image_history
            else None
        ),
    )


def _story_exchange(story: Story, *, include_image_history: bool) -> StoryExchange:
    return StoryExchange(
        story=StoryInfo(
            title=story.title,
            background_setup=story.background_setup,
            description=story.description,
            layout=optional_layout(story.layout),
        ),
        characters=[CharacterSchema.from_domain(c) for c in story.characters],
        elements=[ElementSchema.from_domain(e) for e in story.elements],
        scenes=[
            _scene_exchange(scene, include_image_history=include_image_history)
            for scene in story.scenes
        ],
    )


def _scene_from_exchange(payload: SceneExchange) -> Scene:
    return Scene(
        title=payload.title,
        description=payload.description,
        text_panel=payload.text_panel,
        diagram_panel=payload.diagram_panel.to_domain() if payload.diagram_panel else None,
        layout=optional_layout_domain(payload.layout),
        characters=list(payload.characters),
        elements=list(payload.elements),
        image_history=[record.to_domain() for record in payload.image_history or []],
    )


def _story_from_exchange(payload: StoryExchange) -> Story:
    return Story(
        title=payload.story.title,
        background_setup=payload.story.background_setup,
        description=payload.story.description,
        layout=optional_layout_domain(payload.story.layout),
        characters=[character.to_domain() for character in payload.characters],
        elements=[element.to_domain() for element in payload.elements],
        scenes=[_scene_from_exchange(scene) for scene in payload.scenes],
    )


def _dump(model: ExchangeModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def export_story(story: Story, *, include_image_history: bool = False) -> dict[str, Any]:
    return _dump(_story_exchange(story, include_image_history=include_image_history))


def import_story(payload: dict[str, Any]) -> Story:
    """Build a new story, with fresh identifiers, from an exchange payload."""
    return _story_from_exchange(StoryExchange.model_validate(payload, context=_LENIENT))


def export_book(book: Book, *, include_image_history: bool = False) -> dict[str, Any]:
    """Export a book without identifiers, timestamps, or (by default) image history."""
    exchange = BookExchange(
        book=BookInfo(
            title=book.title,
            description=book.description,
            background_setup=book.background_setup,
            aspect_ratio=book.aspect_ratio,
            style=BookStyleSchema.from_domain(book.style),
            default_layout=optional_layout(book.default_layout),
            characters=[CharacterSchema.from_domain(c) for c in book.characters],
        ),
        stories=[
            _story_exchange(story, include_image_history=include_image_history)
            for story in book.stories
        ],
    )
    return _dump(exchange)


def import_book(payload: dict[str, Any]) -> Book:
    """Build a new book, with fresh identifiers throughout, from an exchange payload."""
    exchange = BookExchange.model_validate(payload, context=_LENIENT)
    info = exchange.book
    return Book(
        title=info.title,
        description=info.description,
        background_setup=info.background_setup,
        aspect_ratio=info.aspect_ratio,
        style=info.style.to_domain() if info.style is not None else BookStyle(),
        default_layout=optional_layout_domain(info.default_layout),
        characters=[character.to_domain() for character in info.characters],
        stories=[_story_from_exchange(story) for story in exchange.stories],
    )


def dumps_book_exchange(book: Book, *, include_image_history: bool = False) -> str:
    return json.dumps(
        export_book(book, include_image_history=include_image_history),
        ensure_ascii=False,
        indent=2,
    )


def loads_book_exchange(text: str) -> Book:
    return import_book(json.loads(text))


def save_exchange_json(path: Path, payload: dict[str, Any]) -> None:
    """Write an exchange document as readable JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def load_exchange_json(path: Path) -> dict[str, Any]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Exchange document must be a JSON object: {path}")
    return payload
