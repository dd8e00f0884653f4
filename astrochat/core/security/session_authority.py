from __future__ import annotations

from datetime import timedelta
from typing import Iterable

import structlog

from astrochat.core.errors import Forbidden, Unauthenticated, store_guard
from astrochat.core.security.jwt_manager import JWTManager
from astrochat.core.security.session_store import SessionTokenStore
from astrochat.core.security.token_model import IssuedToken, Principal, SessionToken
from astrochat.core.store.base import DocumentStore
from astrochat.core.utils.clock import Clock, utc_now
from astrochat.domains.users.repository import UserRepository

logger = structlog.get_logger(__name__)

DEFAULT_SESSION_LIFETIME = timedelta(days=1)
REMEMBER_ME_SESSION_LIFETIME = timedelta(days=30)


class SessionAuthority:
    """Issues, validates and revokes bearer session tokens.

    Every authenticated operation calls :meth:`authorize` first. Expiry is
    absolute: validation never extends a token.

    ``revoke_all`` and a concurrent ``issue`` for the same user are not
    serialized; a token issued while credentials rotate may survive.
    """

    def __init__(
        self,
        store: DocumentStore,
        jwt_manager: JWTManager,
        *,
        clock: Clock | None = None,
        session_lifetime: timedelta = DEFAULT_SESSION_LIFETIME,
        remember_me_lifetime: timedelta = REMEMBER_ME_SESSION_LIFETIME,
    ) -> None:
        self.tokens = SessionTokenStore(store)
        self.users = UserRepository(store)
        self.jwt_manager = jwt_manager
        self.clock = clock or utc_now
        self.session_lifetime = session_lifetime
        self.remember_me_lifetime = remember_me_lifetime

    @store_guard
    async def issue(self, user_id: str, remember_me: bool = False) -> IssuedToken:
        lifetime = self.remember_me_lifetime if remember_me else self.session_lifetime
        expires_at = self.clock() + lifetime
        token = self.jwt_manager.create_token(user_id, expires_at)
        await self.tokens.save(SessionToken(token=token, user_id=user_id, expires_at=expires_at))
        logger.info("session_issued", user_id=user_id, remember_me=remember_me, expires_at=expires_at.isoformat())
        return IssuedToken(token=token, expires_at=expires_at)

    @store_guard
    async def validate(self, token: str | None) -> Principal:
        if not token:
            raise Unauthenticated("Access denied. Token not provided.", code="token_missing")
        try:
            claims = self.jwt_manager.decode_token(token)
        except ValueError as exc:
            raise Unauthenticated("Invalid or unknown token.", code="token_invalid") from exc

        record = await self.tokens.get_by_token(token)
        if record is None or record.user_id != claims.get("sub"):
            raise Unauthenticated("Invalid or unknown token.", code="token_invalid")
        if self.clock() > record.expires_at:
            raise Unauthenticated("Token has expired.", code="token_expired")

        user = await self.users.get(record.user_id)
        if user is None:
            raise Unauthenticated("User not found.", code="user_not_found")
        return Principal(user_id=user.id, kind=user.kind.value)

    async def authorize(self, token: str | None, allowed_kinds: Iterable[str] | None = None) -> Principal:
        principal = await self.validate(token)
        if allowed_kinds is not None:
            allowed = {getattr(kind, "value", kind) for kind in allowed_kinds}
            if principal.kind not in allowed:
                raise Forbidden("Access denied. Insufficient permissions.", code="kind_not_allowed")
        return principal

    @store_guard
    async def revoke(self, token: str) -> None:
        if await self.tokens.delete_token(token):
            logger.info("session_revoked")

    @store_guard
    async def revoke_all(self, user_id: str) -> int:
        removed = await self.tokens.delete_for_user(user_id)
        logger.info("sessions_revoked", user_id=user_id, count=removed)
        return removed

    @store_guard
    async def purge_expired(self) -> int:
        removed = await self.tokens.delete_expired(self.clock())
        logger.info("expired_sessions_purged", count=removed)
        return removed


__all__ = ["SessionAuthority"]
