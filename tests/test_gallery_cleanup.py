from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from book_gen.adapters.memory_asset_store import InMemoryAssetStore
from book_gen.adapters.sqlite_book_store import SQLiteBookStore
from book_gen.application.gallery_cleanup import GalleryReconciler, reconcile_gallery
from book_gen.domain.errors import NotFoundInScopeError
from book_gen.domain.models import Book, Character, ImageRecord, Story
from book_gen.domain.ports import book_scope, story_scope


def _character(selected: str | None = "b") -> Character:
    return Character(
        name="Hero",
        image_gallery=[ImageRecord(id="a"), ImageRecord(id="b"), ImageRecord(id="c")],
        selected_image_id=selected,
    )


def test_reconcile_drops_missing_ids_and_repoints_selection() -> None:
    assets = InMemoryAssetStore()
    asyncio.run(assets.store("scope", "Hero", "a", b"a", "unknown"))
    asyncio.run(assets.store("scope", "Hero", "c", b"c", "unknown"))
    character = _character(selected="b")

    result = asyncio.run(reconcile_gallery(character, "scope", assets))

    assert result.changed
    assert result.removed_ids == ("b",)
    assert character.gallery_ids() == ["a", "c"]
    assert character.selected_image_id == "a"


def test_reconcile_keeps_selection_when_it_survives() -> None:
    assets = InMemoryAssetStore()
    asyncio.run(assets.store("scope", "Hero", "b", b"b", "unknown"))
    character = _character(selected="b")

    asyncio.run(reconcile_gallery(character, "scope", assets))

    assert character.gallery_ids() == ["b"]
    assert character.selected_image_id == "b"


def test_reconcile_clears_selection_when_gallery_empties() -> None:
    character = _character(selected="c")
    result = asyncio.run(reconcile_gallery(character, "scope", InMemoryAssetStore()))
    assert result.remaining_ids == ()
    assert character.selected_image_id is None


def test_reconciler_saves_only_when_something_changed(tmp_path: Path) -> None:
    repository = SQLiteBookStore(db_path=tmp_path / "books.db")
    book = Book(title="B")
    book.add_character(_character())
    story = Story(title="S1", background_setup="x")
    story.add_character(Character(name="Sidekick", image_gallery=[ImageRecord(id="s1")]))
    book.add_story(story)
    repository.save(book)

    assets = InMemoryAssetStore()
    for asset_id in ("a", "b", "c"):
        asyncio.run(assets.store(book_scope(book.id), "Hero", asset_id, b"x", "unknown"))
    asyncio.run(assets.store(story_scope(story.id), "Sidekick", "s1", b"x", "unknown"))
    reconciler = GalleryReconciler(repository, assets)

    unchanged = asyncio.run(reconciler.reconcile_character_gallery(book.id, "hero"))
    saved_at = repository.get_row(book.id)
    assert not unchanged.changed

    asyncio.run(assets.delete(story_scope(story.id), "Sidekick", "s1"))
    changed = asyncio.run(reconciler.reconcile_character_gallery(book.id, "Sidekick", story.id))

    assert changed.removed_ids == ("s1",)
    assert saved_at is not None
    assert repository.get_row(book.id) != saved_at
    loaded = repository.get(book.id)
    assert loaded is not None
    assert loaded.stories[0].characters[0].image_gallery == []


def test_reconciler_raises_for_unknown_character(tmp_path: Path) -> None:
    repository = SQLiteBookStore(db_path=tmp_path / "books.db")
    book = Book(title="B")
    repository.save(book)
    reconciler = GalleryReconciler(repository, InMemoryAssetStore())
    with pytest.raises(NotFoundInScopeError):
        asyncio.run(reconciler.reconcile_character_gallery(book.id, "Ghost"))
    with pytest.raises(NotFoundInScopeError):
        asyncio.run(reconciler.reconcile_character_gallery("missing", "Ghost"))
