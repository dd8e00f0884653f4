from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SendMessageRequest(BaseModel):
    # blank values are rejected by the ledger with a domain error
    receiver_id: str = ""
    content: str = ""


class SendMessageResult(BaseModel):
    message_id: str
    created_at: datetime


class MessageOut(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime
    read: bool


class MarkReadResult(BaseModel):
    marked: int


__all__ = ["MarkReadResult", "MessageOut", "SendMessageRequest", "SendMessageResult"]
