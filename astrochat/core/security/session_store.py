from __future__ import annotations

from datetime import datetime

from astrochat.core.security.token_model import SessionToken
from astrochat.core.store.base import Delete, DocumentStore

SESSION_TOKENS_COLLECTION = "session_tokens"


class SessionTokenStore:
    """Persistence of session tokens on top of the document store."""

    collection = SESSION_TOKENS_COLLECTION

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def save(self, record: SessionToken) -> SessionToken:
        doc_id = await self.store.insert(self.collection, record.to_document())
        return record.model_copy(update={"id": doc_id})

    async def get_by_token(self, token: str) -> SessionToken | None:
        doc = await self.store.find_one(self.collection, {"token": token})
        return SessionToken.from_document(doc) if doc else None

    async def delete_token(self, token: str) -> bool:
        docs = await self.store.find_many(self.collection, {"token": token})
        if not docs:
            return False
        await self.store.atomic_batch([Delete(self.collection, doc["id"]) for doc in docs])
        return True

    async def delete_for_user(self, user_id: str) -> int:
        docs = await self.store.find_many(self.collection, {"user_id": user_id})
        if docs:
            await self.store.atomic_batch([Delete(self.collection, doc["id"]) for doc in docs])
        return len(docs)

    async def delete_expired(self, now: datetime) -> int:
        expired = [
            doc["id"]
            for doc in await self.store.find_many(self.collection)
            if SessionToken.from_document(doc).expires_at < now
        ]
        if expired:
            await self.store.atomic_batch([Delete(self.collection, doc_id) for doc_id in expired])
        return len(expired)


__all__ = ["SESSION_TOKENS_COLLECTION", "SessionTokenStore"]
