"""In-process asset store used by tests and short-lived previews."""

from __future__ import annotations


class InMemoryAssetStore:
    def __init__(self) -> None:
        self.blobs: dict[tuple[str, str, str], bytes] = {}
        self.model_tags: dict[tuple[str, str, str], str] = {}

    async def store(
        self,
        scope: str,
        entity_name: str,
        asset_id: str,
        data: bytes,
        model_tag: str,
    ) -> None:
        key = (scope, entity_name, asset_id)
        self.blobs[key] = bytes(data)
        self.model_tags[key] = model_tag

    async def get(self, scope: str, entity_name: str, asset_id: str) -> bytes | None:
        return self.blobs.get((scope, entity_name, asset_id))

    async def get_all(
        self, scope: str, entity_name: str, asset_ids: list[str]
    ) -> dict[str, bytes]:
        found: dict[str, bytes] = {}
        for asset_id in asset_ids:
            data = self.blobs.get((scope, entity_name, asset_id))
            if data is not None:
                found[asset_id] = data
        return found

    async def delete(self, scope: str, entity_name: str, asset_id: str) -> None:
        key = (scope, entity_name, asset_id)
        self.blobs.pop(key, None)
        self.model_tags.pop(key, None)

    def keys_in_scope(self, scope: str) -> list[tuple[str, str]]:
        """Return ``(entity_name, asset_id)`` pairs stored under ``scope``."""
        return sorted((name, asset_id) for s, name, asset_id in self.blobs if s == scope)
