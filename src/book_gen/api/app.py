"""FastAPI local-preview application for book library workflows."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Literal

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from book_gen.adapters.sqlite_asset_store import SQLiteAssetStore
from book_gen.adapters.sqlite_book_store import SQLiteBookStore
from book_gen.api.contracts import (
    AssetFailureResponse,
    BookCreateRequest,
    BookResponse,
    BookSummaryResponse,
    BookUpdateRequest,
    CharacterUsageResponse,
    DemoteRequest,
    GalleryReconcileResponse,
    LayoutResponse,
    MigrationResponse,
    PromoteRequest,
    StoryCreateRequest,
    StoryResponse,
    StoryUsageResponse,
    ValidationResponse,
)
from book_gen.application.character_migration import (
    CharacterMigrationService,
    MigrationResult,
    StoryUsage,
)
from book_gen.application.gallery_cleanup import GalleryReconciler
from book_gen.application.library import BookLibrary
from book_gen.core.book_schema import SceneLayoutSchema
from book_gen.core.layout_resolver import layout_source_description
from book_gen.core.storage_codec import encode_book
from book_gen.domain.errors import BookGenError, MigrationErrorCode, ValidationFailedError
from book_gen.domain.models import Book, Story

DEFAULT_DB_PATH = Path("work/local/book_gen.db")

ERROR_STATUS: dict[MigrationErrorCode, int] = {
    MigrationErrorCode.NOT_FOUND: 404,
    MigrationErrorCode.NOT_FOUND_IN_SCOPE: 404,
    MigrationErrorCode.CONFLICT: 409,
    MigrationErrorCode.AMBIGUOUS_TARGET: 409,
    MigrationErrorCode.TARGET_REQUIRED: 422,
    MigrationErrorCode.VALIDATION_FAILED: 422,
}

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Simple health payload used by health checks."""

    status: Literal["ok"] = "ok"
    service: str = "book_gen"


class ApiRootResponse(BaseModel):
    """Describes currently available API capabilities and runtime mode."""

    name: str = "book_gen"
    stage: Literal["local-preview"] = "local-preview"
    persistence: Literal["sqlite"] = "sqlite"
    endpoints: list[str] = Field(
        default_factory=lambda: [
            "/healthz",
            "/api/v1",
            "/api/v1/books",
            "/api/v1/books/import",
            "/api/v1/books/{book_id}",
            "/api/v1/books/{book_id}/validation",
            "/api/v1/books/{book_id}/export",
            "/api/v1/books/{book_id}/stories",
            "/api/v1/books/{book_id}/stories/{story_id}/scenes/{scene_id}/layout",
            "/api/v1/books/{book_id}/characters/{name}/usage",
            "/api/v1/books/{book_id}/characters/promote",
            "/api/v1/books/{book_id}/characters/demote",
            "/api/v1/books/{book_id}/characters/{name}/gallery/reconcile",
        ]
    )


def _resolve_db_path(db_path: Path | None) -> Path:
    """Resolve DB path from explicit arg, env var, then default path."""
    if db_path is not None:
        return db_path
    env_value = os.environ.get("BOOK_GEN_DB_PATH", "").strip()
    if env_value:
        return Path(env_value)
    return DEFAULT_DB_PATH


def _resolve_asset_db_path(asset_db_path: Path | None, book_db_path: Path) -> Path:
    """Asset blobs share the book database unless configured separately."""
    if asset_db_path is not None:
        return asset_db_path
    env_value = os.environ.get("BOOK_GEN_ASSET_DB_PATH", "").strip()
    if env_value:
        return Path(env_value)
    return book_db_path


def _cors_origins() -> list[str]:
    raw = os.environ.get("BOOK_GEN_CORS_ORIGINS", "").strip()
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]


def _http_error(exc: BookGenError) -> HTTPException:
    detail: Any = str(exc)
    if isinstance(exc, ValidationFailedError):
        detail = {"message": str(exc), "errors": exc.errors}
    return HTTPException(status_code=ERROR_STATUS[exc.code], detail=detail)


def _book_summary(book: Book) -> BookSummaryResponse:
    return BookSummaryResponse(
        book_id=book.id,
        title=book.title,
        description=book.description,
        aspect_ratio=book.aspect_ratio,
        story_count=len(book.stories),
        character_count=len(book.characters),
        created_at=book.created_at,
        updated_at=book.updated_at,
    )


def _book_response(book: Book) -> BookResponse:
    summary = _book_summary(book)
    return BookResponse(**summary.model_dump(), document=encode_book(book))


def _story_response(book: Book, story: Story) -> StoryResponse:
    return StoryResponse(
        story_id=story.id,
        book_id=book.id,
        title=story.title,
        scene_count=len(story.scenes),
    )


def _usage_response(usage: StoryUsage) -> StoryUsageResponse:
    return StoryUsageResponse(story_id=usage.id, title=usage.title, scene_count=usage.scene_count)


def _migration_response(result: MigrationResult) -> MigrationResponse:
    """Translate a migration result, raising for failures."""
    if not result.success:
        code = result.error_code or MigrationErrorCode.VALIDATION_FAILED
        raise HTTPException(
            status_code=ERROR_STATUS[code],
            detail={
                "code": code.value,
                "message": result.message,
                "character_name": result.character_name,
                "stories_using": [
                    _usage_response(usage).model_dump() for usage in result.stories_using
                ],
            },
        )
    return MigrationResponse(
        success=True,
        character_name=result.character_name,
        source_scope=result.source_scope,
        target_scope=result.target_scope,
        target_story_id=result.target_story_id,
        stories_using=[_usage_response(usage) for usage in result.stories_using],
        assets_migrated=result.assets_migrated,
        asset_failures=[
            AssetFailureResponse(
                asset_id=failure.asset_id,
                operation=failure.operation,
                message=failure.message,
            )
            for failure in result.asset_failures
        ],
    )


def create_app(db_path: Path | None = None, asset_db_path: Path | None = None) -> FastAPI:
    """Create the API application."""
    effective_db_path = _resolve_db_path(db_path)
    effective_asset_db_path = _resolve_asset_db_path(asset_db_path, effective_db_path)
    book_store = SQLiteBookStore(db_path=effective_db_path)
    asset_store = SQLiteAssetStore(db_path=effective_asset_db_path)
    library = BookLibrary(book_store)
    migrations = CharacterMigrationService(book_store, asset_store)
    reconciler = GalleryReconciler(book_store, asset_store)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("api.ready books=%s", len(book_store.list_books()))
        yield

    app = FastAPI(
        title="book_gen API",
        version="0.1.0",
        description=(
            "Local preview API for editing books, stories, and scenes, "
            "resolving scene layouts, and moving characters between scopes."
        ),
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "system", "description": "Service health and runtime metadata."},
            {"name": "api", "description": "API discovery and root-level capability listing."},
            {"name": "books", "description": "Book CRUD, validation, import, and export."},
            {"name": "stories", "description": "Stories and resolved scene layouts."},
            {
                "name": "characters",
                "description": "Character usage, promotion, demotion, and gallery cleanup.",
            },
        ],
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info(
        "api.start db_path=%s asset_db_path=%s",
        effective_db_path,
        effective_asset_db_path,
    )

    def book_or_404(book_id: str) -> Book:
        book = library.get_book(book_id)
        if book is None:
            raise HTTPException(status_code=404, detail="Book not found")
        return book

    @app.get("/healthz", response_model=HealthResponse, tags=["system"])
    def healthz() -> HealthResponse:
        return HealthResponse()

    @app.get("/api/v1", response_model=ApiRootResponse, tags=["api"])
    def api_v1_root() -> ApiRootResponse:
        return ApiRootResponse()

    @app.get("/api/v1/books", response_model=list[BookSummaryResponse], tags=["books"])
    def list_books() -> list[BookSummaryResponse]:
        return [_book_summary(book) for book in library.list_books()]

    @app.post("/api/v1/books", response_model=BookResponse, tags=["books"], status_code=201)
    def create_book(payload: BookCreateRequest) -> BookResponse:
        try:
            book = library.create_book(
                title=payload.title,
                description=payload.description,
                background_setup=payload.background_setup,
                aspect_ratio=payload.aspect_ratio,
            )
        except BookGenError as exc:
            raise _http_error(exc) from exc
        return _book_response(book)

    @app.post(
        "/api/v1/books/import", response_model=BookResponse, tags=["books"], status_code=201
    )
    def import_book(payload: dict[str, Any] = Body(...)) -> BookResponse:
        try:
            book = library.import_book(payload)
        except BookGenError as exc:
            raise _http_error(exc) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _book_response(book)

    @app.get("/api/v1/books/{book_id}", response_model=BookResponse, tags=["books"])
    def get_book(book_id: str) -> BookResponse:
        return _book_response(book_or_404(book_id))

    @app.put("/api/v1/books/{book_id}", response_model=BookResponse, tags=["books"])
    def update_book(book_id: str, payload: BookUpdateRequest) -> BookResponse:
        book_or_404(book_id)
        try:
            book = library.update_book(
                book_id,
                title=payload.title,
                description=payload.description,
                background_setup=payload.background_setup,
                aspect_ratio=payload.aspect_ratio,
            )
        except BookGenError as exc:
            raise _http_error(exc) from exc
        return _book_response(book)

    @app.delete("/api/v1/books/{book_id}", status_code=204, tags=["books"])
    def delete_book(book_id: str) -> None:
        if not library.delete_book(book_id):
            raise HTTPException(status_code=404, detail="Book not found")

    @app.get(
        "/api/v1/books/{book_id}/validation", response_model=ValidationResponse, tags=["books"]
    )
    def validate_book(book_id: str) -> ValidationResponse:
        book_or_404(book_id)
        result = library.validate(book_id)
        return ValidationResponse(
            is_valid=result.is_valid,
            errors=result.errors,
            warnings=result.warnings,
        )

    @app.get("/api/v1/books/{book_id}/export", tags=["books"])
    def export_book(
        book_id: str,
        include_image_history: bool = Query(default=False),
    ) -> dict[str, Any]:
        book_or_404(book_id)
        return library.export_book(book_id, include_image_history=include_image_history)

    @app.post(
        "/api/v1/books/{book_id}/stories",
        response_model=StoryResponse,
        tags=["stories"],
        status_code=201,
    )
    def create_story(book_id: str, payload: StoryCreateRequest) -> StoryResponse:
        book_or_404(book_id)
        story = Story(
            title=payload.title,
            background_setup=payload.background_setup,
            description=payload.description,
        )
        try:
            library.add_story(book_id, story)
        except BookGenError as exc:
            raise _http_error(exc) from exc
        return _story_response(book_or_404(book_id), story)

    @app.get(
        "/api/v1/books/{book_id}/stories/{story_id}/scenes/{scene_id}/layout",
        response_model=LayoutResponse,
        tags=["stories"],
    )
    def scene_layout(book_id: str, story_id: str, scene_id: str) -> LayoutResponse:
        book = book_or_404(book_id)
        try:
            layout, source = library.scene_layout(book_id, story_id, scene_id)
        except BookGenError as exc:
            raise _http_error(exc) from exc
        story = book.get_story(story_id)
        scene = story.get_scene(scene_id) if story is not None else None
        description = (
            layout_source_description(scene, story, book) if scene is not None else source
        )
        return LayoutResponse(
            scene_id=scene_id,
            source=source,
            description=description,
            layout=SceneLayoutSchema.from_domain(layout).model_dump(mode="json", by_alias=True),
        )

    @app.get(
        "/api/v1/books/{book_id}/characters/{name}/usage",
        response_model=CharacterUsageResponse,
        tags=["characters"],
    )
    def character_usage(book_id: str, name: str) -> CharacterUsageResponse:
        book_or_404(book_id)
        usage = library.character_usage(book_id, name)
        return CharacterUsageResponse(
            character_name=name,
            stories_using=[_usage_response(item) for item in usage.stories_using],
            total_scene_count=usage.total_scene_count,
        )

    @app.post(
        "/api/v1/books/{book_id}/characters/promote",
        response_model=MigrationResponse,
        tags=["characters"],
    )
    async def promote_character(book_id: str, payload: PromoteRequest) -> MigrationResponse:
        result = await migrations.promote(book_id, payload.story_id, payload.character_name)
        return _migration_response(result)

    @app.post(
        "/api/v1/books/{book_id}/characters/demote",
        response_model=MigrationResponse,
        tags=["characters"],
    )
    async def demote_character(book_id: str, payload: DemoteRequest) -> MigrationResponse:
        result = await migrations.demote(book_id, payload.character_name, payload.target_story_id)
        return _migration_response(result)

    @app.post(
        "/api/v1/books/{book_id}/characters/{name}/gallery/reconcile",
        response_model=GalleryReconcileResponse,
        tags=["characters"],
    )
    async def reconcile_gallery(
        book_id: str,
        name: str,
        story_id: str | None = Query(default=None),
    ) -> GalleryReconcileResponse:
        try:
            result = await reconciler.reconcile_character_gallery(book_id, name, story_id)
        except BookGenError as exc:
            raise _http_error(exc) from exc
        return GalleryReconcileResponse(
            character_name=result.character_name,
            scope=result.scope,
            removed_ids=list(result.removed_ids),
            remaining_ids=list(result.remaining_ids),
            selected_image_id=result.selected_image_id,
        )

    return app


app = create_app()
