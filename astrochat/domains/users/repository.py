from __future__ import annotations

from typing import Any

from astrochat.core.store.repository import BaseRepository
from astrochat.domains.users.model import USERS_COLLECTION, User


class UserRepository(BaseRepository):
    collection = USERS_COLLECTION

    async def get(self, user_id: str) -> User | None:
        doc = await self.get_doc(user_id)
        return User.from_document(doc) if doc else None

    async def get_or_fail(self, user_id: str, *, detail: str = "User not found") -> User:
        return User.from_document(await self.get_doc_or_fail(user_id, detail=detail, code="user_not_found"))

    async def get_by_email(self, email: str) -> User | None:
        doc = await self.store.find_one(self.collection, {"email": email})
        return User.from_document(doc) if doc else None

    async def get_by_friend_code(self, code: str) -> User | None:
        doc = await self.store.find_one(self.collection, {"friend_code": code})
        return User.from_document(doc) if doc else None

    async def friend_code_taken(self, code: str) -> bool:
        return await self.store.find_one(self.collection, {"friend_code": code}) is not None

    async def stored_requests_from(self, user_id: str, sender_id: str) -> list[dict[str, Any]]:
        """Queue entries from ``sender_id`` exactly as stored, for ``ArrayRemove``."""
        doc = await self.get_doc(user_id) or {}
        return [
            entry
            for entry in doc.get("pending_requests") or []
            if (entry.get("sender_id") or entry.get("senderId")) == sender_id
        ]

    async def create(self, data: dict[str, Any]) -> User:
        user_id = await self.store.insert(self.collection, data)
        return await self.get_or_fail(user_id)

    async def update(self, user_id: str, fields: dict[str, Any]) -> None:
        await self.store.update_fields(self.collection, user_id, fields)


__all__ = ["UserRepository"]
