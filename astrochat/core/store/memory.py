from __future__ import annotations

import asyncio
import copy
from datetime import datetime
from typing import Any, Mapping, Sequence

from astrochat.core.store.base import (
    BatchOp,
    Delete,
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    Insert,
    Update,
    apply_update,
    matches,
    resolve_value,
)
from astrochat.core.utils.clock import Clock, utc_now
from astrochat.core.utils.ids import uuid7


class InMemoryDocumentStore(DocumentStore):
    """Process-local document store.

    Collections are insertion-ordered dicts. Server timestamps never go
    backwards even if the injected clock does, which keeps message order
    stable within a conversation.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or utc_now
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self._last_ts: datetime | None = None

    def _server_now(self) -> datetime:
        now = self.clock()
        if self._last_ts is not None and now < self._last_ts:
            now = self._last_ts
        self._last_ts = now
        return now

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(name, {})

    @staticmethod
    def _out(doc_id: str, body: Mapping[str, Any]) -> dict[str, Any]:
        out = copy.deepcopy(dict(body))
        out["id"] = doc_id
        return out

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        body = self._collection(collection).get(doc_id)
        return self._out(doc_id, body) if body is not None else None

    async def find_one(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        contains: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        for doc_id, body in self._collection(collection).items():
            if matches(body, filters, contains):
                return self._out(doc_id, body)
        return None

    async def find_many(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        contains: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        return [
            self._out(doc_id, body)
            for doc_id, body in self._collection(collection).items()
            if matches(body, filters, contains)
        ]

    async def insert(self, collection: str, doc: Mapping[str, Any], *, doc_id: str | None = None) -> str:
        async with self._lock:
            doc_id = doc_id or uuid7()
            body = {k: v for k, v in doc.items() if k != "id"}
            self._collection(collection)[doc_id] = copy.deepcopy(resolve_value(body, self._server_now()))
            return doc_id

    async def update_fields(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self.atomic_batch([Update(collection, doc_id, fields)])

    async def delete(self, collection: str, doc_id: str) -> None:
        async with self._lock:
            self._collection(collection).pop(doc_id, None)

    async def atomic_batch(self, ops: Sequence[BatchOp]) -> datetime:
        async with self._lock:
            now = self._server_now()
            # stage every write before touching the collections
            pending: dict[tuple[str, str], dict[str, Any] | None] = {}
            for op in ops:
                key = (op.collection, op.doc_id)
                current = pending[key] if key in pending else self._collection(op.collection).get(op.doc_id)
                if isinstance(op, Delete):
                    pending[key] = None
                elif isinstance(op, Insert):
                    if current is not None:
                        raise DocumentExists(f"{op.collection}/{op.doc_id} already exists")
                    body = {k: v for k, v in op.doc.items() if k != "id"}
                    pending[key] = copy.deepcopy(resolve_value(body, now))
                elif isinstance(op, Update):
                    if current is None:
                        raise DocumentNotFound(f"{op.collection}/{op.doc_id} does not exist")
                    pending[key] = apply_update(current, op.fields, now)
                else:
                    raise TypeError(f"Unsupported batch op: {op!r}")
            for (collection, doc_id), body in pending.items():
                if body is None:
                    self._collection(collection).pop(doc_id, None)
                else:
                    self._collection(collection)[doc_id] = body
            return now


__all__ = ["InMemoryDocumentStore"]
