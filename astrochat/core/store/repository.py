from __future__ import annotations

from typing import Any

from astrochat.core.errors import NotFound
from astrochat.core.store.base import DocumentStore


class BaseRepository:
    collection: str = ""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get_doc(self, doc_id: str) -> dict[str, Any] | None:
        return await self.store.get(self.collection, doc_id)

    async def get_doc_or_fail(
        self,
        doc_id: str,
        *,
        detail: str | None = None,
        code: str | None = None,
    ) -> dict[str, Any]:
        doc = await self.store.get(self.collection, doc_id)
        if doc is None:
            raise NotFound(
                detail or f"{self.collection} record not found",
                code=code or f"{self.collection}_not_found",
            )
        return doc


__all__ = ["BaseRepository"]
