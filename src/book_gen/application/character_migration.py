"""Promote story characters to the book cast and demote them back.

Each operation moves the character metadata between the book and one story,
then moves every gallery image between the matching asset scopes. The
metadata move is authoritative: asset copy failures are logged and reported
on the result, and stale gallery ids are dropped later by gallery
reconciliation. A demote that would leave scene references unresolved is
rejected before anything is saved or moved.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from book_gen.core.validation import validate_book
from book_gen.domain.errors import MigrationErrorCode
from book_gen.domain.models import UNKNOWN_MODEL, Book, Character, Story
from book_gen.domain.ports import AssetStore, BookRepository, book_scope, story_scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoryUsage:
    """Scenes of one story that reference a character."""

    id: str
    title: str
    scene_count: int


@dataclass(frozen=True)
class CharacterUsage:
    stories_using: tuple[StoryUsage, ...]
    total_scene_count: int


@dataclass(frozen=True)
class AssetFailure:
    """One asset that could not be moved between scopes."""

    asset_id: str
    operation: str
    message: str


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of a promote/demote request."""

    success: bool
    character_name: str
    error_code: MigrationErrorCode | None = None
    message: str | None = None
    source_scope: str | None = None
    target_scope: str | None = None
    target_story_id: str | None = None
    stories_using: tuple[StoryUsage, ...] = ()
    assets_migrated: int = 0
    asset_failures: tuple[AssetFailure, ...] = ()

    @classmethod
    def failure(
        cls,
        *,
        character_name: str,
        code: MigrationErrorCode,
        message: str,
        stories_using: tuple[StoryUsage, ...] = (),
    ) -> MigrationResult:
        return cls(
            success=False,
            character_name=character_name,
            error_code=code,
            message=message,
            stories_using=stories_using,
        )


def compute_character_usage(book: Book, character_name: str) -> CharacterUsage:
    """Count, per story, the scenes whose character list references ``character_name``."""
    stories_using: list[StoryUsage] = []
    for story in book.stories:
        scene_count = len(story.scenes_using_character(character_name))
        if scene_count:
            stories_using.append(StoryUsage(id=story.id, title=story.title, scene_count=scene_count))
    return CharacterUsage(
        stories_using=tuple(stories_using),
        total_scene_count=sum(usage.scene_count for usage in stories_using),
    )


def _asset_ids(character: Character) -> list[str]:
    asset_ids = character.gallery_ids()
    if character.reference_image_id and character.reference_image_id not in asset_ids:
        asset_ids.append(character.reference_image_id)
    return asset_ids


class CharacterMigrationService:
    """Moves characters between book scope and story scope."""

    def __init__(self, repository: BookRepository, asset_store: AssetStore) -> None:
        self._repository = repository
        self._asset_store = asset_store
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def _book_lock(self, book_id: str) -> AsyncIterator[None]:
        """Serialize migrations per book; the entry is dropped once nobody holds or awaits it."""
        lock, users = self._locks.get(book_id, (asyncio.Lock(), 0))
        self._locks[book_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[book_id]
            if users <= 1:
                del self._locks[book_id]
            else:
                self._locks[book_id] = (lock, users - 1)

    async def promote(self, book_id: str, story_id: str, character_name: str) -> MigrationResult:
        """Move a story-level character, and its gallery, into the book cast."""
        async with self._book_lock(book_id):
            return await self._promote(book_id, story_id, character_name)

    async def demote(
        self,
        book_id: str,
        character_name: str,
        target_story_id: str | None = None,
    ) -> MigrationResult:
        """Move a book-level character, and its gallery, into one story."""
        async with self._book_lock(book_id):
            return await self._demote(book_id, character_name, target_story_id)

    async def _promote(self, book_id: str, story_id: str, character_name: str) -> MigrationResult:
        book = await asyncio.to_thread(self._repository.get, book_id)
        if book is None:
            return MigrationResult.failure(
                character_name=character_name,
                code=MigrationErrorCode.NOT_FOUND,
                message="Book not found",
            )
        story = book.get_story(story_id)
        if story is None:
            return MigrationResult.failure(
                character_name=character_name,
                code=MigrationErrorCode.NOT_FOUND,
                message="Story not found",
            )
        character = story.find_character(character_name)
        if character is None:
            return MigrationResult.failure(
                character_name=character_name,
                code=MigrationErrorCode.NOT_FOUND_IN_SCOPE,
                message="Character not found in story",
            )
        if book.find_character(character.name) is not None:
            return MigrationResult.failure(
                character_name=character.name,
                code=MigrationErrorCode.CONFLICT,
                message=f'Character "{character.name}" already exists at book level',
            )

        story.pop_character(character.name)
        book.add_character(character)
        source, target = story_scope(story.id), book_scope(book.id)
        migrated, failures = await self._move_assets(character, source, target)
        await asyncio.to_thread(self._repository.save, book)
        logger.info(
            "character.promote book_id=%s story_id=%s name=%s assets=%s failures=%s",
            book.id,
            story.id,
            character.name,
            migrated,
            len(failures),
        )
        return MigrationResult(
            success=True,
            character_name=character.name,
            source_scope=source,
            target_scope=target,
            assets_migrated=migrated,
            asset_failures=tuple(failures),
        )

    async def _demote(
        self,
        book_id: str,
        character_name: str,
        target_story_id: str | None,
    ) -> MigrationResult:
        book = await asyncio.to_thread(self._repository.get, book_id)
        if book is None:
            return MigrationResult.failure(
                character_name=character_name,
                code=MigrationErrorCode.NOT_FOUND,
                message="Book not found",
            )
        character = book.find_character(character_name)
        if character is None:
            return MigrationResult.failure(
                character_name=character_name,
                code=MigrationErrorCode.NOT_FOUND_IN_SCOPE,
                message="Character not found at book level",
            )

        usage = compute_character_usage(book, character.name)
        target = self._demotion_target(book, character, usage, target_story_id)
        if isinstance(target, MigrationResult):
            return target

        known_errors = set(validate_book(book).errors)
        book.pop_character(character.name)
        target.add_character(character)
        introduced = [error for error in validate_book(book).errors if error not in known_errors]
        if introduced:
            logger.warning(
                "character.demote_rejected book_id=%s story_id=%s name=%s errors=%s",
                book.id,
                target.id,
                character.name,
                len(introduced),
            )
            return MigrationResult.failure(
                character_name=character.name,
                code=MigrationErrorCode.VALIDATION_FAILED,
                message=(
                    f'Demoting "{character.name}" into "{target.title}" would orphan references: '
                    + "; ".join(introduced)
                ),
                stories_using=usage.stories_using,
            )
        source, destination = book_scope(book.id), story_scope(target.id)
        migrated, failures = await self._move_assets(character, source, destination)
        await asyncio.to_thread(self._repository.save, book)
        logger.info(
            "character.demote book_id=%s story_id=%s name=%s assets=%s failures=%s",
            book.id,
            target.id,
            character.name,
            migrated,
            len(failures),
        )
        return MigrationResult(
            success=True,
            character_name=character.name,
            source_scope=source,
            target_scope=destination,
            target_story_id=target.id,
            stories_using=usage.stories_using,
            assets_migrated=migrated,
            asset_failures=tuple(failures),
        )

    @staticmethod
    def _demotion_target(
        book: Book,
        character: Character,
        usage: CharacterUsage,
        target_story_id: str | None,
    ) -> Story | MigrationResult:
        if target_story_id is not None:
            target = book.get_story(target_story_id)
            if target is None:
                return MigrationResult.failure(
                    character_name=character.name,
                    code=MigrationErrorCode.NOT_FOUND,
                    message="Target story not found",
                    stories_using=usage.stories_using,
                )
        else:
            story_count = len(usage.stories_using)
            if story_count >= 2:
                return MigrationResult.failure(
                    character_name=character.name,
                    code=MigrationErrorCode.AMBIGUOUS_TARGET,
                    message=(
                        f'Character "{character.name}" is used in {story_count} stories; '
                        "remove it from all but one story before demoting"
                    ),
                    stories_using=usage.stories_using,
                )
            if story_count == 0:
                return MigrationResult.failure(
                    character_name=character.name,
                    code=MigrationErrorCode.TARGET_REQUIRED,
                    message=(
                        f'Character "{character.name}" is not used in any story; '
                        "please specify a target story"
                    ),
                )
            target = book.get_story(usage.stories_using[0].id)
            if target is None:
                raise RuntimeError("Usage referenced a story that is not part of the book.")

        if target.find_character(character.name) is not None:
            return MigrationResult.failure(
                character_name=character.name,
                code=MigrationErrorCode.CONFLICT,
                message=f'Target story "{target.title}" already has a character named "{character.name}"',
                stories_using=usage.stories_using,
            )
        return target

    async def _move_assets(
        self,
        character: Character,
        source_scope: str,
        target_scope: str,
    ) -> tuple[int, list[AssetFailure]]:
        """Copy each asset to ``target_scope`` and only then delete it from ``source_scope``."""
        model_tags = {record.id: record.model_name or UNKNOWN_MODEL for record in character.image_gallery}
        migrated = 0
        failures: list[AssetFailure] = []
        for asset_id in _asset_ids(character):
            try:
                data = await self._asset_store.get(source_scope, character.name, asset_id)
            except Exception as exc:  # noqa: BLE001
                failures.append(self._asset_failure(asset_id, "get", exc, source_scope))
                continue
            if data is None:
                logger.warning(
                    "character.asset_missing scope=%s name=%s asset_id=%s",
                    source_scope,
                    character.name,
                    asset_id,
                )
                failures.append(AssetFailure(asset_id=asset_id, operation="get", message="missing"))
                continue
            try:
                await self._asset_store.store(
                    target_scope,
                    character.name,
                    asset_id,
                    data,
                    model_tags.get(asset_id, UNKNOWN_MODEL),
                )
            except Exception as exc:  # noqa: BLE001
                failures.append(self._asset_failure(asset_id, "store", exc, target_scope))
                continue
            migrated += 1
            try:
                await self._asset_store.delete(source_scope, character.name, asset_id)
            except Exception as exc:  # noqa: BLE001
                failures.append(self._asset_failure(asset_id, "delete", exc, source_scope))
        return migrated, failures

    @staticmethod
    def _asset_failure(asset_id: str, operation: str, exc: Exception, scope: str) -> AssetFailure:
        logger.warning(
            "character.asset_failed operation=%s scope=%s asset_id=%s error=%s",
            operation,
            scope,
            asset_id,
            exc,
        )
        return AssetFailure(asset_id=asset_id, operation=operation, message=str(exc))
