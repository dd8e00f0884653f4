from __future__ import annotations

import asyncio
import secrets
from typing import Any, Iterable, Protocol

import structlog

from astrochat.core.security.session_authority import SessionAuthority
from astrochat.domains.messages.events import MessageCreated
from astrochat.domains.realtime.protocol import WsOutbound
from astrochat.domains.users.model import UserKind

logger = structlog.get_logger(__name__)


class RealtimeSocket(Protocol):
    async def send_json(self, data: Any) -> None:
        ...

    async def close(self, code: int = 1000) -> None:
        ...


class Connection:
    """One authenticated socket bound to its owner's personal channel."""

    def __init__(self, user_id: str, socket: RealtimeSocket) -> None:
        self.id = secrets.token_hex(8)
        self.user_id = user_id
        self.socket = socket
        self.chats: set[str] = set()
        self.send_lock = asyncio.Lock()

    async def send(self, message: WsOutbound) -> None:
        # single writer per socket
        async with self.send_lock:
            await self.socket.send_json(message.model_dump(mode="json"))


class FanoutGateway:
    """Best-effort push of ledger events to connected sockets.

    Nothing is queued: a user without a live connection simply misses the
    push and reads the message from the ledger later. Events go to the
    receiver's personal channel; joined conversation channels are tracked per
    connection but carry no traffic of their own.
    """

    def __init__(
        self,
        authority: SessionAuthority,
        *,
        allowed_kinds: Iterable[str] = (UserKind.MORTAL,),
    ) -> None:
        self.authority = authority
        self.allowed_kinds = tuple(allowed_kinds)
        self._lock = asyncio.Lock()
        self._by_user: dict[str, dict[str, Connection]] = {}
        self._by_chat: dict[str, dict[str, Connection]] = {}

    async def connect(self, socket: RealtimeSocket, token: str | None) -> Connection:
        """Authorize the handshake; Unauthenticated/Forbidden propagate to the caller."""
        principal = await self.authority.authorize(token, self.allowed_kinds)
        connection = Connection(principal.user_id, socket)
        async with self._lock:
            self._by_user.setdefault(principal.user_id, {})[connection.id] = connection
        logger.info("realtime_connected", user_id=principal.user_id, connection_id=connection.id)
        return connection

    async def join_chat(self, connection: Connection, chat_id: str) -> None:
        async with self._lock:
            self._by_chat.setdefault(chat_id, {})[connection.id] = connection
            connection.chats.add(chat_id)
        logger.debug("realtime_chat_joined", user_id=connection.user_id, chat_id=chat_id)

    async def leave_chat(self, connection: Connection, chat_id: str) -> None:
        async with self._lock:
            self._drop_from_chat(connection, chat_id)
        logger.debug("realtime_chat_left", user_id=connection.user_id, chat_id=chat_id)

    async def disconnect(self, connection: Connection) -> None:
        async with self._lock:
            for chat_id in list(connection.chats):
                self._drop_from_chat(connection, chat_id)
            members = self._by_user.get(connection.user_id)
            if members is None or members.pop(connection.id, None) is None:
                return
            if not members:
                del self._by_user[connection.user_id]
        logger.info("realtime_disconnected", user_id=connection.user_id, connection_id=connection.id)

    def _drop_from_chat(self, connection: Connection, chat_id: str) -> None:
        connection.chats.discard(chat_id)
        members = self._by_chat.get(chat_id)
        if members is None:
            return
        members.pop(connection.id, None)
        if not members:
            del self._by_chat[chat_id]

    def connections_for(self, user_id: str) -> list[Connection]:
        return list(self._by_user.get(user_id, {}).values())

    def chat_members(self, chat_id: str) -> list[Connection]:
        return list(self._by_chat.get(chat_id, {}).values())

    async def _push(self, message: WsOutbound, targets: list[Connection]) -> int:
        delivered = 0
        for connection in targets:
            try:
                await connection.send(message)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "realtime_push_failed",
                    user_id=connection.user_id,
                    connection_id=connection.id,
                    error=str(exc),
                )
                await self.disconnect(connection)
        return delivered

    async def deliver(self, message: WsOutbound, target_user_id: str) -> int:
        """Push to every connection of ``target_user_id``; returns how many got it."""
        async with self._lock:
            targets = self.connections_for(target_user_id)
        if not targets:
            logger.debug("realtime_target_offline", user_id=target_user_id, type=message.type)
            return 0
        return await self._push(message, targets)

    async def on_message_created(self, event: MessageCreated) -> None:
        await self.deliver(WsOutbound(type=event.event_type, data=event.wire_data()), event.receiver_id)


__all__ = ["Connection", "FanoutGateway", "RealtimeSocket"]
