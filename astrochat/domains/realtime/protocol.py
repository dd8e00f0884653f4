"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class WsInbound(BaseModel):
    """Client → Server."""

    type: Literal["join_chat", "leave_chat", "ping"]
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def chat_id(self) -> str | None:
        value = self.data.get("chat_id")
        return str(value) if value else None


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # message.created | pong | error
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def error(cls, code: str, detail: str) -> "WsOutbound":
        return cls(type="error", data={"code": code, "detail": detail})


__all__ = ["WsInbound", "WsOutbound"]
