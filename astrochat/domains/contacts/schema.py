from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

NO_MESSAGES_PREVIEW = "No messages yet"


class RequestOutcome(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class FriendRequestCreate(BaseModel):
    friend_code: str = Field(..., min_length=1, description="Target user's friend code, e.g. #aZ3k9QwE")


class FriendRequestResult(BaseModel):
    status: RequestOutcome
    message: str


class PendingRequestOut(BaseModel):
    sender_id: str
    sender_name: str
    sender_avatar: str = ""
    received_at: datetime


class ContactSummary(BaseModel):
    id: str
    name: str
    avatar: str | None = None
    friend_code: str | None = None
    last_message: str = NO_MESSAGES_PREVIEW
    timestamp: str = ""
    raw_timestamp: datetime | None = None
    has_unread_messages: bool = False
    unread_count: int = 0
