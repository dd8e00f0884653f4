from __future__ import annotations

from datetime import datetime, timezone

import structlog

from astrochat.core.errors import EmptyContent, NotContact, ValidationFailed, store_guard
from astrochat.core.store.base import SERVER_TIMESTAMP, DocumentStore, Update
from astrochat.core.utils.ids import uuid7
from astrochat.domains.messages.events import EventBus, MessageCreated
from astrochat.domains.messages.model import Message
from astrochat.domains.messages.repository import MessageRepository
from astrochat.domains.users.model import USERS_COLLECTION
from astrochat.domains.users.repository import UserRepository

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


class MessageLedger:
    """Append-only message log with read-state bookkeeping.

    The ledger is the durable source of truth; live delivery happens through
    the event bus and may be dropped without losing the message.
    """

    def __init__(
        self,
        store: DocumentStore,
        bus: EventBus,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.store = store
        self.bus = bus
        self.messages = MessageRepository(store)
        self.users = UserRepository(store)
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    @store_guard
    async def send(self, sender_id: str, receiver_id: str, content: str) -> Message:
        if not receiver_id:
            raise ValidationFailed("Receiver and content are required", code="receiver_required")
        if not content or not content.strip():
            raise EmptyContent("Message content must not be empty")

        sender = await self.users.get_or_fail(sender_id, detail="Sender not found")
        if receiver_id not in sender.contacts:
            raise NotContact("Receiver is not a contact of the sender")
        await self.users.get_or_fail(receiver_id, detail="Receiver not found")

        # the message and both summaries commit together or not at all
        message_id = uuid7()
        committed_at = await self.store.atomic_batch(
            [
                self.messages.insert_op(message_id, sender_id, receiver_id, content),
                Update(
                    USERS_COLLECTION,
                    sender_id,
                    {f"last_message_with.{receiver_id}": {"content": content, "sent_at": SERVER_TIMESTAMP, "unread": False}},
                ),
                Update(
                    USERS_COLLECTION,
                    receiver_id,
                    {f"last_message_with.{sender_id}": {"content": content, "sent_at": SERVER_TIMESTAMP, "unread": True}},
                ),
            ]
        )
        message = Message(
            id=message_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            created_at=committed_at,
            participants=[sender_id, receiver_id],
        )
        logger.info("message_sent", message_id=message.id, sender_id=sender_id, receiver_id=receiver_id)

        await self.bus.publish(
            MessageCreated(
                message_id=message.id,
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
                created_at=message.created_at,
            )
        )
        return message

    def _page_size(self, limit: int | None) -> int:
        if limit is None:
            return self.default_page_size
        if limit < 1 or limit > self.max_page_size:
            raise ValidationFailed(
                f"limit must be between 1 and {self.max_page_size}", code="invalid_limit"
            )
        return limit

    @store_guard
    async def list_conversation(
        self,
        user_id: str,
        contact_id: str,
        limit: int | None = None,
        before: datetime | None = None,
    ) -> list[Message]:
        """Return the newest ``limit`` messages (before ``before`` if given), oldest first.

        Unread messages of the snapshot addressed to ``user_id`` are marked
        read in one batch. Messages stored after the snapshot keep their
        unread flag until the next read.
        """
        page_size = self._page_size(limit)
        if before is not None and before.tzinfo is None:
            before = before.replace(tzinfo=timezone.utc)
        snapshot = await self.messages.conversation(user_id, contact_id)

        page = [m for m in snapshot if before is None or m.created_at < before]
        page = page[-page_size:]

        unread = [m for m in snapshot if m.receiver_id == user_id and not m.read]
        if unread:
            await self._commit_read(user_id, contact_id, unread)
            flipped = {m.id for m in unread}
            page = [m.model_copy(update={"read": True}) if m.id in flipped else m for m in page]
        else:
            await self._clear_unread_flag(user_id, contact_id)
        return page

    @store_guard
    async def mark_read(self, user_id: str, contact_id: str) -> int:
        unread = await self.messages.unread_from(user_id, contact_id)
        if unread:
            await self._commit_read(user_id, contact_id, unread)
        else:
            await self._clear_unread_flag(user_id, contact_id)
        return len(unread)

    @store_guard
    async def unread_count(self, user_id: str, contact_id: str) -> int:
        return await self.messages.count_unread(user_id, contact_id)

    async def _commit_read(self, user_id: str, contact_id: str, unread: list[Message]) -> None:
        ops = self.messages.mark_read_ops(unread)
        if await self._has_summary(user_id, contact_id):
            ops.append(Update(USERS_COLLECTION, user_id, {f"last_message_with.{contact_id}.unread": False}))
        await self.store.atomic_batch(ops)
        logger.info("messages_marked_read", user_id=user_id, contact_id=contact_id, count=len(unread))

    async def _clear_unread_flag(self, user_id: str, contact_id: str) -> None:
        user = await self.users.get(user_id)
        summary = user.last_message_with.get(contact_id) if user else None
        if summary is not None and summary.unread:
            await self.users.update(user_id, {f"last_message_with.{contact_id}.unread": False})

    async def _has_summary(self, user_id: str, contact_id: str) -> bool:
        user = await self.users.get(user_id)
        return bool(user and contact_id in user.last_message_with)


__all__ = ["MessageLedger"]
