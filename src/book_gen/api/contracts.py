"""Typed contracts shared by API handlers and Python interfaces."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from book_gen.domain.models import MAX_BOOK_TITLE_LENGTH, VALID_ASPECT_RATIOS


class ContractModel(BaseModel):
    """Base model config used by all API contracts."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def _check_aspect_ratio(value: str | None) -> str | None:
    if value is not None and value not in VALID_ASPECT_RATIOS:
        raise ValueError(f"aspect_ratio must be one of: {', '.join(VALID_ASPECT_RATIOS)}")
    return value


class BookCreateRequest(ContractModel):
    """Create one empty book."""

    title: str = Field(min_length=1, max_length=MAX_BOOK_TITLE_LENGTH)
    description: str | None = None
    background_setup: str | None = None
    aspect_ratio: str | None = None

    @field_validator("aspect_ratio")
    @classmethod
    def _aspect_ratio(cls, value: str | None) -> str | None:
        return _check_aspect_ratio(value)


class BookUpdateRequest(ContractModel):
    """Partial update of book metadata; omitted fields stay unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=MAX_BOOK_TITLE_LENGTH)
    description: str | None = None
    background_setup: str | None = None
    aspect_ratio: str | None = None

    @field_validator("aspect_ratio")
    @classmethod
    def _aspect_ratio(cls, value: str | None) -> str | None:
        return _check_aspect_ratio(value)


class BookSummaryResponse(ContractModel):
    book_id: str
    title: str
    description: str | None
    aspect_ratio: str
    story_count: int
    character_count: int
    created_at: datetime
    updated_at: datetime


class BookResponse(BookSummaryResponse):
    """Book summary plus the full storage document."""

    document: dict[str, Any]


class ValidationResponse(ContractModel):
    is_valid: bool
    errors: list[str]
    warnings: list[str]


class StoryCreateRequest(ContractModel):
    """Create a story inside a book."""

    title: str = Field(min_length=1, max_length=300)
    background_setup: str = Field(min_length=1)
    description: str | None = None


class StoryResponse(ContractModel):
    story_id: str
    book_id: str
    title: str
    scene_count: int


class LayoutResponse(ContractModel):
    """Effective scene layout with the tier it was resolved from."""

    scene_id: str
    source: Literal["scene", "story", "book", "default"]
    description: str
    layout: dict[str, Any]


class StoryUsageResponse(ContractModel):
    story_id: str
    title: str
    scene_count: int


class CharacterUsageResponse(ContractModel):
    character_name: str
    stories_using: list[StoryUsageResponse]
    total_scene_count: int


class PromoteRequest(ContractModel):
    story_id: str = Field(min_length=1)
    character_name: str = Field(min_length=1)


class DemoteRequest(ContractModel):
    character_name: str = Field(min_length=1)
    target_story_id: str | None = None


class AssetFailureResponse(ContractModel):
    asset_id: str
    operation: str
    message: str


class MigrationResponse(ContractModel):
    """Successful promote/demote outcome."""

    success: bool
    character_name: str
    source_scope: str | None = None
    target_scope: str | None = None
    target_story_id: str | None = None
    stories_using: list[StoryUsageResponse] = Field(default_factory=list)
    assets_migrated: int = 0
    asset_failures: list[AssetFailureResponse] = Field(default_factory=list)


class GalleryReconcileResponse(ContractModel):
    character_name: str
    scope: str
    removed_ids: list[str]
    remaining_ids: list[str]
    selected_image_id: str | None
