from __future__ import annotations

import heapq
from datetime import datetime

from astrochat.core.store.base import SERVER_TIMESTAMP, Insert, Update
from astrochat.core.store.repository import BaseRepository
from astrochat.domains.messages.model import MESSAGES_COLLECTION, Message


def _created(message: Message) -> datetime:
    return message.created_at


class MessageRepository(BaseRepository):
    collection = MESSAGES_COLLECTION

    def insert_op(self, message_id: str, sender_id: str, receiver_id: str, content: str) -> Insert:
        return Insert(
            self.collection,
            message_id,
            {
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "content": content,
                "created_at": SERVER_TIMESTAMP,
                "read": False,
                "participants": [sender_id, receiver_id],
            },
        )

    async def sent(self, sender_id: str, receiver_id: str) -> list[Message]:
        docs = await self.store.find_many(self.collection, {"sender_id": sender_id, "receiver_id": receiver_id})
        return [Message.from_document(doc) for doc in docs]

    async def conversation(self, user_id: str, contact_id: str) -> list[Message]:
        """Messages between the pair, oldest first.

        Equal timestamps keep store order within one direction; across
        directions the messages sent by ``user_id`` come first.
        """
        outgoing = sorted(await self.sent(user_id, contact_id), key=_created)
        if contact_id == user_id:
            return outgoing
        incoming = sorted(await self.sent(contact_id, user_id), key=_created)
        return list(heapq.merge(outgoing, incoming, key=_created))

    async def unread_from(self, receiver_id: str, sender_id: str) -> list[Message]:
        docs = await self.store.find_many(
            self.collection,
            {"receiver_id": receiver_id, "sender_id": sender_id, "read": False},
        )
        return [Message.from_document(doc) for doc in docs]

    async def count_unread(self, receiver_id: str, sender_id: str) -> int:
        return len(await self.unread_from(receiver_id, sender_id))

    def mark_read_ops(self, messages: list[Message]) -> list[Update]:
        return [Update(self.collection, m.id, {"read": True}) for m in messages]


__all__ = ["MessageRepository"]
