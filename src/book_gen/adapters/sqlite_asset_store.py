"""SQLite-backed binary asset store for character galleries and scene images."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import UTC, datetime
from pathlib import Path


class SQLiteAssetStore:
    """Store image bytes keyed by ``(scope, entity_name, asset_id)``.

    The async methods run the blocking sqlite calls in a worker thread so the
    store satisfies the ``AssetStore`` port.
    """

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
                CREATE TABLE IF NOT EXISTS assets (
                    scope TEXT NOT NULL,
                    entity_name TEXT NOT NULL,
                    asset_id TEXT NOT NULL,
                    data BLOB NOT NULL,
                    model_tag TEXT NOT NULL,
                    stored_at_utc TEXT NOT NULL,
                    PRIMARY KEY (scope, entity_name, asset_id)
                )
                """
            )

    async def store(
        self,
        scope: str,
        entity_name: str,
        asset_id: str,
        data: bytes,
        model_tag: str,
    ) -> None:
        await asyncio.to_thread(self._store, scope, entity_name, asset_id, data, model_tag)

    async def get(self, scope: str, entity_name: str, asset_id: str) -> bytes | None:
        return await asyncio.to_thread(self._get, scope, entity_name, asset_id)

    async def get_all(
        self, scope: str, entity_name: str, asset_ids: list[str]
    ) -> dict[str, bytes]:
        """Return the bytes of every requested asset that exists; missing ids are omitted."""
        return await asyncio.to_thread(self._get_all, scope, entity_name, asset_ids)

    async def delete(self, scope: str, entity_name: str, asset_id: str) -> None:
        await asyncio.to_thread(self._delete, scope, entity_name, asset_id)

    def model_tag(self, scope: str, entity_name: str, asset_id: str) -> str | None:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT model_tag FROM assets
                WHERE scope = ? AND entity_name = ? AND asset_id = ?
                """,
                (scope, entity_name, asset_id),
            ).fetchone()
        return None if row is None else str(row["model_tag"])

    def _store(
        self,
        scope: str,
        entity_name: str,
        asset_id: str,
        data: bytes,
        model_tag: str,
    ) -> None:
        now = datetime.now(UTC).isoformat()
        with self._connect() as connection:
            connection.execute(
                """
                INSERT INTO assets (scope, entity_name, asset_id, data, model_tag, stored_at_utc)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(scope, entity_name, asset_id) DO UPDATE SET
                    data = excluded.data,
                    model_tag = excluded.model_tag,
                    stored_at_utc = excluded.stored_at_utc
                """,
                (scope, entity_name, asset_id, sqlite3.Binary(data), model_tag, now),
            )

    def _get(self, scope: str, entity_name: str, asset_id: str) -> bytes | None:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT data FROM assets
                WHERE scope = ? AND entity_name = ? AND asset_id = ?
                """,
                (scope, entity_name, asset_id),
            ).fetchone()
        return None if row is None else bytes(row["data"])

    def _get_all(self, scope: str, entity_name: str, asset_ids: list[str]) -> dict[str, bytes]:
        if not asset_ids:
            return {}
        placeholders = ", ".join("?" for _ in asset_ids)
        with self._connect() as connection:
            rows = connection.execute(
                f"""
                SELECT asset_id, data FROM assets
                WHERE scope = ? AND entity_name = ? AND asset_id IN ({placeholders})
                """,
                (scope, entity_name, *asset_ids),
            ).fetchall()
        return {str(row["asset_id"]): bytes(row["data"]) for row in rows}

    def _delete(self, scope: str, entity_name: str, asset_id: str) -> None:
        with self._connect() as connection:
            connection.execute(
                "DELETE FROM assets WHERE scope = ? AND entity_name = ? AND asset_id = ?",
                (scope, entity_name, asset_id),
            )
