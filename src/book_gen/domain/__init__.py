"""Domain models, errors, and ports for the book hierarchy."""

from book_gen.domain.errors import (
    BookGenError,
    DuplicateNameError,
    MigrationErrorCode,
    NotFoundInScopeError,
    ValidationFailedError,
)
from book_gen.domain.models import (
    Book,
    BookStyle,
    Character,
    DiagramPanel,
    DiagramStyle,
    Element,
    ImageRecord,
    LayoutCanvas,
    LayoutElements,
    LayoutType,
    PanelConfig,
    PositionedRect,
    Scene,
    SceneLayout,
    Story,
)
from book_gen.domain.ports import AssetStore, BookRepository, book_scope, story_scope

__all__ = [
    "AssetStore",
    "Book",
    "BookGenError",
    "BookRepository",
    "BookStyle",
    "Character",
    "DiagramPanel",
    "DiagramStyle",
    "DuplicateNameError",
    "Element",
    "ImageRecord",
    "LayoutCanvas",
    "LayoutElements",
    "LayoutType",
    "MigrationErrorCode",
    "NotFoundInScopeError",
    "PanelConfig",
    "PositionedRect",
    "Scene",
    "SceneLayout",
    "Story",
    "ValidationFailedError",
    "book_scope",
    "story_scope",
]
