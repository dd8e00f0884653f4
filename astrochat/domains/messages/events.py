from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class MessageCreated(BaseModel):
    """Published by the message ledger after a message is persisted."""

    message_id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime

    event_type: str = "message.created"

    def wire_data(self) -> dict[str, Any]:
        return {
            "id": self.message_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "content": self.content,
            "timestamp": self.created_at.isoformat(),
        }


Handler = Callable[[Any], Awaitable[None]]


class EventBus:
    """In-process publish/subscribe keyed by event class."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Any) -> int:
        """Run every handler; a failing handler is logged and does not stop the others."""
        delivered = 0
        for handler in list(self._handlers.get(type(event), [])):
            try:
                await handler(event)
                delivered += 1
            except Exception:
                logger.exception("event_handler_failed", event_type=type(event).__name__)
        return delivered


__all__ = ["EventBus", "MessageCreated"]
