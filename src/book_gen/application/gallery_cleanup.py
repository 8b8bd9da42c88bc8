"""Drop gallery references whose image bytes are gone from the asset store."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from book_gen.domain.errors import NotFoundInScopeError
from book_gen.domain.models import Character
from book_gen.domain.ports import AssetStore, BookRepository, book_scope, story_scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GalleryReconciliation:
    character_name: str
    scope: str
    removed_ids: tuple[str, ...]
    remaining_ids: tuple[str, ...]
    selected_image_id: str | None

    @property
    def changed(self) -> bool:
        return bool(self.removed_ids)


async def reconcile_gallery(
    character: Character,
    scope: str,
    asset_store: AssetStore,
) -> GalleryReconciliation:
    """Remove stale gallery records from ``character`` in place.

    When the selected image was dropped, the selection moves to the first
    remaining image, or is cleared if none remain.
    """
    gallery_ids = character.gallery_ids()
    present = await asset_store.get_all(scope, character.name, gallery_ids) if gallery_ids else {}
    removed = [asset_id for asset_id in gallery_ids if asset_id not in present]
    if removed:
        character.image_gallery = [r for r in character.image_gallery if r.id in present]
        if character.selected_image_id in removed:
            character.selected_image_id = (
                character.image_gallery[0].id if character.image_gallery else None
            )
        logger.info(
            "gallery.reconcile scope=%s name=%s removed=%s remaining=%s",
            scope,
            character.name,
            len(removed),
            len(character.image_gallery),
        )
    return GalleryReconciliation(
        character_name=character.name,
        scope=scope,
        removed_ids=tuple(removed),
        remaining_ids=tuple(character.gallery_ids()),
        selected_image_id=character.selected_image_id,
    )


class GalleryReconciler:
    """Loads a book, reconciles one character gallery, and saves once if anything changed."""

    def __init__(self, repository: BookRepository, asset_store: AssetStore) -> None:
        self._repository = repository
        self._asset_store = asset_store

    async def reconcile_character_gallery(
        self,
        book_id: str,
        character_name: str,
        story_id: str | None = None,
    ) -> GalleryReconciliation:
        book = self._repository.get(book_id)
        if book is None:
            raise NotFoundInScopeError("Book", book_id)
        if story_id is None:
            character = book.find_character(character_name)
            scope = book_scope(book.id)
        else:
            story = book.get_story(story_id)
            if story is None:
                raise NotFoundInScopeError("Story", story_id)
            character = story.find_character(character_name)
            scope = story_scope(story.id)
        if character is None:
            raise NotFoundInScopeError("Character", character_name)

        result = await reconcile_gallery(character, scope, self._asset_store)
        if result.changed:
            book.touch()
            self._repository.save(book)
        return result
