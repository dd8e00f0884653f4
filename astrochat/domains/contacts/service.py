from __future__ import annotations

from datetime import timezone, tzinfo

import structlog

from astrochat.core.errors import (
    AlreadyContacts,
    DuplicateRequest,
    NotFound,
    SelfRequest,
    store_guard,
)
from astrochat.core.store.base import ArrayRemove, ArrayUnion, DocumentStore, Update
from astrochat.core.utils.clock import Clock, utc_now
from astrochat.domains.contacts.formatting import relative_timestamp
from astrochat.domains.contacts.schema import ContactSummary, RequestOutcome
from astrochat.domains.messages.repository import MessageRepository
from astrochat.domains.users.model import USERS_COLLECTION, PendingRequest, User
from astrochat.domains.users.repository import UserRepository

logger = structlog.get_logger(__name__)


class ContactGraph:
    """Friend-request state machine and symmetric contact sets.

    Per ordered pair (A, B): no relation -> pending from A -> contacts, or
    pending -> no relation on reject. A request that crosses one already
    pending in the other direction is resolved as an accept.

    The duplicate-request check reads then writes without a transaction, so
    two identical requests racing each other can both pass it.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Clock | None = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self.store = store
        self.users = UserRepository(store)
        self.messages = MessageRepository(store)
        self.clock = clock or utc_now
        self.tz = tz

    @store_guard
    async def send_request(self, from_id: str, to_friend_code: str) -> RequestOutcome:
        sender = await self.users.get_or_fail(from_id)
        receiver = await self.users.get_by_friend_code(to_friend_code.strip())
        if receiver is None:
            raise NotFound("Friend code not found", code="friend_code_not_found")
        if receiver.id == sender.id:
            raise SelfRequest("You cannot send a request to yourself")
        if receiver.id in sender.contacts:
            raise AlreadyContacts("This user is already your contact")
        if receiver.pending_from(sender.id) is not None:
            raise DuplicateRequest("You already sent a request to this user")

        if sender.pending_from(receiver.id) is not None:
            await self._link(receiver=sender, sender=receiver)
            logger.info("friend_request_crossed", user_id=sender.id, peer_id=receiver.id)
            return RequestOutcome.ACCEPTED

        request = PendingRequest(
            sender_id=sender.id,
            sender_name=sender.name,
            sender_avatar=sender.avatar_url or "",
            received_at=self.clock(),
        )
        await self.users.update(
            receiver.id,
            {"pending_requests": ArrayUnion(request.model_dump(mode="python"))},
        )
        logger.info("friend_request_sent", sender_id=sender.id, receiver_id=receiver.id)
        return RequestOutcome.PENDING

    @store_guard
    async def accept_request(self, receiver_id: str, sender_id: str) -> None:
        receiver = await self.users.get_or_fail(receiver_id)
        if receiver.pending_from(sender_id) is None:
            raise NotFound("Request not found", code="request_not_found")
        sender = await self.users.get(sender_id)
        if sender is None:
            raise NotFound("Sender not found", code="sender_not_found")
        await self._link(receiver=receiver, sender=sender)
        logger.info("friend_request_accepted", receiver_id=receiver_id, sender_id=sender_id)

    async def _link(self, *, receiver: User, sender: User) -> None:
        # only the pair's own entries leave the queues; requests from others
        # that land meanwhile are kept
        to_receiver = await self.users.stored_requests_from(receiver.id, sender.id)
        to_sender = await self.users.stored_requests_from(sender.id, receiver.id)
        # both documents change together or not at all
        await self.store.atomic_batch(
            [
                Update(
                    USERS_COLLECTION,
                    receiver.id,
                    {"pending_requests": ArrayRemove(*to_receiver), "contacts": ArrayUnion(sender.id)},
                ),
                Update(
                    USERS_COLLECTION,
                    sender.id,
                    {"pending_requests": ArrayRemove(*to_sender), "contacts": ArrayUnion(receiver.id)},
                ),
            ]
        )

    @store_guard
    async def reject_request(self, receiver_id: str, sender_id: str) -> None:
        receiver = await self.users.get_or_fail(receiver_id)
        if receiver.pending_from(sender_id) is None:
            raise NotFound("Request not found", code="request_not_found")
        entries = await self.users.stored_requests_from(receiver_id, sender_id)
        await self.users.update(receiver_id, {"pending_requests": ArrayRemove(*entries)})
        logger.info("friend_request_rejected", receiver_id=receiver_id, sender_id=sender_id)

    @store_guard
    async def list_pending_requests(self, user_id: str) -> list[PendingRequest]:
        user = await self.users.get_or_fail(user_id)
        return list(user.pending_requests)

    @store_guard
    async def list_contacts(self, user_id: str) -> list[ContactSummary]:
        user = await self.users.get_or_fail(user_id)
        now = self.clock()
        summaries: list[ContactSummary] = []
        for contact_id in user.contacts:
            contact = await self.users.get(contact_id)
            if contact is None:
                continue
            summary = ContactSummary(
                id=contact.id,
                name=contact.name,
                avatar=contact.avatar_url,
                friend_code=contact.friend_code,
            )
            last = user.last_message_with.get(contact_id)
            if last is not None:
                summary.last_message = last.content or summary.last_message
                summary.raw_timestamp = last.sent_at
                summary.timestamp = relative_timestamp(last.sent_at, now, self.tz)
                summary.has_unread_messages = last.unread
                # count only when the summary flags something unread
                if last.unread:
                    summary.unread_count = await self.messages.count_unread(user_id, contact_id)
            summaries.append(summary)

        return sorted(summaries, key=_recency_key)


def _recency_key(summary: ContactSummary) -> tuple[int, float]:
    if summary.raw_timestamp is None:
        return (1, 0.0)
    moment = summary.raw_timestamp
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (0, -moment.timestamp())


__all__ = ["ContactGraph"]
