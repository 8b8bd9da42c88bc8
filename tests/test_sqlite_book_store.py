from __future__ import annotations

import asyncio
from pathlib import Path

from book_gen.adapters.sqlite_asset_store import SQLiteAssetStore
from book_gen.adapters.sqlite_book_store import SQLiteBookStore
from book_gen.domain.models import Book, Character, ImageRecord, Scene, Story


def _book(title: str = "B") -> Book:
    book = Book(title=title)
    book.add_character(Character(name="Mentor", image_gallery=[ImageRecord(id="m1")]))
    story = Story(title="S1", background_setup="Harbor")
    story.add_scene(Scene(title="Arrival", description="D", characters=["Mentor"]))
    book.add_story(story)
    return book


def test_book_lifecycle(tmp_path: Path) -> None:
    store = SQLiteBookStore(db_path=tmp_path / "nested" / "books.db")
    book = _book()
    store.save(book)

    loaded = store.get(book.id)
    assert loaded == book
    assert [item.id for item in store.list_books()] == [book.id]

    book.update(title="Renamed")
    store.save(book)
    row = store.get_row(book.id)
    assert row is not None
    assert row.title == "Renamed"
    assert len(store.list_books()) == 1

    assert store.delete(book.id) is True
    assert store.delete(book.id) is False
    assert store.get(book.id) is None


def test_books_persist_across_store_instances(tmp_path: Path) -> None:
    db_path = tmp_path / "books.db"
    first = _book("First")
    second = _book("Second")
    SQLiteBookStore(db_path=db_path).save(first)
    SQLiteBookStore(db_path=db_path).save(second)
    titles = sorted(book.title for book in SQLiteBookStore(db_path=db_path).list_books())
    assert titles == ["First", "Second"]


def test_asset_store_round_trip_and_get_all(tmp_path: Path) -> None:
    store = SQLiteAssetStore(db_path=tmp_path / "assets.db")

    async def scenario() -> tuple[bytes | None, dict[str, bytes], bytes | None]:
        await store.store("book:1", "Hero", "a", b"\x89PNG-a", "imagen-3")
        await store.store("book:1", "Hero", "b", b"\x89PNG-b", "unknown")
        await store.store("story-1", "Hero", "a", b"other-scope", "unknown")
        single = await store.get("book:1", "Hero", "a")
        found = await store.get_all("book:1", "Hero", ["a", "b", "missing"])
        await store.delete("book:1", "Hero", "a")
        deleted = await store.get("book:1", "Hero", "a")
        return single, found, deleted

    single, found, deleted = asyncio.run(scenario())

    assert single == b"\x89PNG-a"
    assert found == {"a": b"\x89PNG-a", "b": b"\x89PNG-b"}
    assert deleted is None
    assert store.model_tag("book:1", "Hero", "b") == "unknown"
    assert asyncio.run(store.get("story-1", "Hero", "a")) == b"other-scope"
    assert asyncio.run(store.get_all("book:1", "Hero", [])) == {}


def test_asset_store_overwrites_existing_asset(tmp_path: Path) -> None:
    store = SQLiteAssetStore(db_path=tmp_path / "assets.db")
    asyncio.run(store.store("s", "Hero", "a", b"old", "unknown"))
    asyncio.run(store.store("s", "Hero", "a", b"new", "imagen-3"))
    assert asyncio.run(store.get("s", "Hero", "a")) == b"new"
    assert store.model_tag("s", "Hero", "a") == "imagen-3"
