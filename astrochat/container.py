from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import structlog

from astrochat.core.security.jwt_manager import JWTManager, JWTManagerImpl
from astrochat.core.security.password_hasher import Argon2Hasher, PasswordHasher
from astrochat.core.security.session_authority import SessionAuthority
from astrochat.core.settings import Settings
from astrochat.core.store.base import DocumentStore
from astrochat.core.store.memory import InMemoryDocumentStore
from astrochat.core.utils.clock import Clock, utc_now
from astrochat.domains.contacts.service import ContactGraph
from astrochat.domains.messages.events import EventBus, MessageCreated
from astrochat.domains.messages.service import MessageLedger
from astrochat.domains.realtime.gateway import FanoutGateway
from astrochat.domains.users.service import AccountService

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    store: DocumentStore
    bus: EventBus
    authority: SessionAuthority
    accounts: AccountService
    contacts: ContactGraph
    ledger: MessageLedger
    gateway: FanoutGateway


def build_store(settings: Settings, clock: Clock | None = None) -> DocumentStore:
    if not settings.database_url:
        logger.info("store_selected", backend="memory")
        return InMemoryDocumentStore(clock=clock)
    # SQL stack is only imported when a database is configured
    from astrochat.core.store.sql import SqlDocumentStore

    logger.info("store_selected", backend="sql")
    return SqlDocumentStore.from_url(settings.database_url, env=settings.env, clock=clock)


def build_services(
    settings: Settings,
    *,
    store: DocumentStore | None = None,
    clock: Clock | None = None,
    hasher: PasswordHasher | None = None,
    jwt_manager: JWTManager | None = None,
) -> Services:
    clock = clock or utc_now
    store = store if store is not None else build_store(settings, clock)
    bus = EventBus()

    authority = SessionAuthority(
        store,
        jwt_manager or JWTManagerImpl(settings),
        clock=clock,
        session_lifetime=timedelta(days=settings.session_ttl_days),
        remember_me_lifetime=timedelta(days=settings.remember_me_ttl_days),
    )
    gateway = FanoutGateway(authority)
    bus.subscribe(MessageCreated, gateway.on_message_created)

    return Services(
        settings=settings,
        store=store,
        bus=bus,
        authority=authority,
        accounts=AccountService(
            store,
            authority,
            hasher or Argon2Hasher(),
            friend_code_length=settings.friend_code_length,
            friend_code_max_attempts=settings.friend_code_max_attempts,
        ),
        contacts=ContactGraph(store, clock=clock, tz=settings.tz),
        ledger=MessageLedger(
            store,
            bus,
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
        ),
        gateway=gateway,
    )


__all__ = ["Services", "build_services", "build_store"]
