"""Scene → story → book layout fallback resolution."""

from __future__ import annotations

import logging
from typing import Literal

from book_gen.domain.models import (
    DEFAULT_ASPECT_RATIO,
    Book,
    LayoutCanvas,
    LayoutElements,
    LayoutType,
    PositionedRect,
    Scene,
    SceneLayout,
    Story,
)

LayoutSource = Literal["scene", "story", "book", "default"]
DEFAULT_CANVAS_WIDTH = 1080

logger = logging.getLogger(__name__)


def resolve_layout(scene: Scene, story: Story | None, book: Book | None) -> SceneLayout | None:
    """Return the first layout found on scene, story, then book; None means system default."""
    source = layout_source(scene, story, book)
    logger.debug("layout.resolve scene_id=%s source=%s", scene.id, source)
    if source == "scene":
        return scene.layout
    if source == "story" and story is not None:
        return story.layout
    if source == "book" and book is not None:
        return book.default_layout
    return None


def layout_source(scene: Scene, story: Story | None, book: Book | None) -> LayoutSource:
    if scene.layout is not None:
        return "scene"
    if story is not None and story.layout is not None:
        return "story"
    if book is not None and book.default_layout is not None:
        return "book"
    return "default"


def layout_source_description(scene: Scene, story: Story | None, book: Book | None) -> str:
    """Human-readable provenance of the resolved layout."""
    source = layout_source(scene, story, book)
    if source == "scene":
        return "Scene-specific layout"
    if source == "story":
        return f"Story layout ({story.title if story is not None else 'Unknown'})"
    if source == "book":
        return f"Book default layout ({book.title if book is not None else 'Unknown'})"
    return "System default (overlay)"


def has_own_layout(scene: Scene) -> bool:
    return scene.layout is not None


def story_has_layout(story: Story | None) -> bool:
    return story is not None and story.layout is not None


def book_has_default_layout(book: Book | None) -> bool:
    return book is not None and book.default_layout is not None


def canvas_for_aspect_ratio(aspect_ratio: str, *, width: int = DEFAULT_CANVAS_WIDTH) -> LayoutCanvas:
    """Build a canvas of ``width`` pixels whose height follows ``W:H``."""
    try:
        ratio_w, ratio_h = (int(part) for part in aspect_ratio.split(":", maxsplit=1))
    except ValueError as exc:
        raise ValueError(f"Aspect ratio must look like 'W:H', got {aspect_ratio!r}.") from exc
    if ratio_w <= 0 or ratio_h <= 0:
        raise ValueError(f"Aspect ratio parts must be positive, got {aspect_ratio!r}.")
    return LayoutCanvas(width=width, height=round(width * ratio_h / ratio_w), aspect_ratio=aspect_ratio)


def system_default_layout(aspect_ratio: str = DEFAULT_ASPECT_RATIO) -> SceneLayout:
    """Overlay layout with the image covering the whole canvas."""
    canvas = canvas_for_aspect_ratio(aspect_ratio)
    return SceneLayout(
        type=LayoutType.OVERLAY,
        canvas=canvas,
        elements=LayoutElements(
            image=PositionedRect(
                x=0,
                y=0,
                width=canvas.width,
                height=canvas.height,
                z_index=0,
                aspect_ratio=aspect_ratio,
            )
        ),
    )


def effective_layout(scene: Scene, story: Story | None, book: Book | None) -> SceneLayout:
    """Resolved layout, falling back to the system default sized to the book aspect ratio."""
    resolved = resolve_layout(scene, story, book)
    if resolved is not None:
        return resolved
    aspect_ratio = book.aspect_ratio if book is not None else DEFAULT_ASPECT_RATIO
    return system_default_layout(aspect_ratio)
