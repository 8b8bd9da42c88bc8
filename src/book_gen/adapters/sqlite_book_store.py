"""SQLite-backed persistence for whole book aggregates."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from book_gen.core.storage_codec import dumps_book, loads_book
from book_gen.domain.models import Book


@dataclass(frozen=True)
class StoredBookRow:
    """One persisted book document with its bookkeeping columns."""

    book_id: str
    title: str
    payload_json: str
    saved_at_utc: str


class SQLiteBookStore:
    """Persist book aggregates as storage-codec JSON documents in one SQLite table."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path))
        connection.row_factory = sqlite3.Row
        return connection

    def _initialize_schema(self) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS books (
                    book_id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    saved_at_utc TEXT NOT NULL
                )
                """
            )

    def save(self, book: Book) -> None:
        """Insert or replace the stored document for ``book``."""
        now = datetime.now(UTC).isoformat()
        with self._connect() as connection:
            connection.execute(
                """
                INSERT INTO books (book_id, title, payload_json, saved_at_utc)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(book_id) DO UPDATE SET
                    title = excluded.title,
                    payload_json = excluded.payload_json,
                    saved_at_utc = excluded.saved_at_utc
                """,
                (book.id, book.title, dumps_book(book), now),
            )

    def get(self, book_id: str) -> Book | None:
        row = self.get_row(book_id)
        if row is None:
            return None
        return loads_book(row.payload_json)

    def get_row(self, book_id: str) -> StoredBookRow | None:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT book_id, title, payload_json, saved_at_utc
                FROM books
                WHERE book_id = ?
                """,
                (book_id,),
            ).fetchone()
        if row is None:
            return None
        return self._book_from_row(row)

    def list_books(self) -> list[Book]:
        """Load every stored book, most recently saved first."""
        with self._connect() as connection:
            rows = connection.execute(
                """
                SELECT book_id, title, payload_json, saved_at_utc
                FROM books
                ORDER BY saved_at_utc DESC, book_id ASC
                """
            ).fetchall()
        return [loads_book(self._book_from_row(row).payload_json) for row in rows]

    def delete(self, book_id: str) -> bool:
        with self._connect() as connection:
            cursor = connection.execute("DELETE FROM books WHERE book_id = ?", (book_id,))
            deleted_rows = cursor.rowcount
        return deleted_rows > 0

    @staticmethod
    def _book_from_row(row: sqlite3.Row) -> StoredBookRow:
        return StoredBookRow(
            book_id=str(row["book_id"]),
            title=str(row["title"]),
            payload_json=str(row["payload_json"]),
            saved_at_utc=str(row["saved_at_utc"]),
        )
