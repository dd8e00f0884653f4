from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

MESSAGES_COLLECTION = "messages"


class Message(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime
    read: bool = False
    participants: list[str] = Field(default_factory=list)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Message":
        return cls(
            id=doc["id"],
            sender_id=doc.get("sender_id") or doc["senderId"],
            receiver_id=doc.get("receiver_id") or doc["receiverId"],
            content=doc.get("content", ""),
            created_at=doc.get("created_at") or doc["timestamp"],
            read=bool(doc.get("read", False)),
            participants=list(doc.get("participants") or []),
        )


__all__ = ["MESSAGES_COLLECTION", "Message"]
