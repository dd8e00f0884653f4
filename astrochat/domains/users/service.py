from __future__ import annotations

import re

import structlog

from astrochat.core.errors import (
    Conflict,
    EmailTaken,
    Unauthenticated,
    ValidationFailed,
    store_guard,
)
from astrochat.core.security.password_hasher import PasswordHasher
from astrochat.core.security.session_authority import SessionAuthority
from astrochat.core.security.token_model import IssuedToken
from astrochat.core.store.base import SERVER_TIMESTAMP, DocumentStore
from astrochat.core.utils.ids import friend_code
from astrochat.domains.users.model import USER_SCHEMA_VERSION, User, UserKind
from astrochat.domains.users.repository import UserRepository

logger = structlog.get_logger(__name__)

_PASSWORD_RULES = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"\d"),
    re.compile(r"[^A-Za-z\d]"),
)
MIN_PASSWORD_LENGTH = 8


def check_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH or not all(rule.search(password) for rule in _PASSWORD_RULES):
        raise ValidationFailed(
            "Password needs 8+ characters with upper and lower case letters, a digit and a symbol",
            code="weak_password",
        )


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    """Registration and credential checks in front of the session authority."""

    def __init__(
        self,
        store: DocumentStore,
        authority: SessionAuthority,
        hasher: PasswordHasher,
        *,
        friend_code_length: int = 8,
        friend_code_max_attempts: int = 20,
    ) -> None:
        self.users = UserRepository(store)
        self.authority = authority
        self.hasher = hasher
        self.friend_code_length = friend_code_length
        self.friend_code_max_attempts = friend_code_max_attempts

    async def _unique_friend_code(self) -> str:
        # query-then-insert; two registrations can still race for one code
        for _ in range(self.friend_code_max_attempts):
            code = friend_code(self.friend_code_length)
            if not await self.users.friend_code_taken(code):
                return code
        raise Conflict("Could not allocate a friend code, try again", code="friend_code_exhausted")

    @store_guard
    async def register(
        self,
        name: str,
        email: str,
        password: str,
        avatar_url: str | None = None,
    ) -> User:
        email = normalize_email(email)
        check_password_strength(password)
        if await self.users.get_by_email(email) is not None:
            raise EmailTaken("A user with this email already exists")

        user = await self.users.create(
            {
                "name": name.strip(),
                "email": email,
                "password_hash": await self.hasher.hash(password),
                "avatar_url": avatar_url,
                "kind": UserKind.MORTAL.value,
                "friend_code": await self._unique_friend_code(),
                "contacts": [],
                "pending_requests": [],
                "last_message_with": {},
                "status": 1,
                "created_at": SERVER_TIMESTAMP,
                "schema_version": USER_SCHEMA_VERSION,
            }
        )
        logger.info("user_registered", user_id=user.id)
        return user

    @store_guard
    async def login(self, email: str, password: str, remember_me: bool = False) -> tuple[User, IssuedToken]:
        user = await self.users.get_by_email(normalize_email(email))
        if user is None:
            logger.info("login_failed", reason="unknown_email")
            raise Unauthenticated("Invalid credentials", code="invalid_credentials")
        if user.is_federated_only:
            raise Unauthenticated(
                "This account has no password, sign in with the federated provider",
                code="federated_account",
            )
        if not await self.hasher.verify(password, user.password_hash or ""):
            logger.info("login_failed", reason="bad_password", user_id=user.id)
            raise Unauthenticated("Invalid credentials", code="invalid_credentials")
        if self.hasher.needs_rehash(user.password_hash or ""):
            await self.users.update(user.id, {"password_hash": await self.hasher.hash(password)})
            logger.info("password_rehashed", user_id=user.id)

        issued = await self.authority.issue(user.id, remember_me=remember_me)
        return user, issued

    async def logout(self, token: str) -> None:
        await self.authority.revoke(token)

    @store_guard
    async def change_password(self, user_id: str, current_password: str, new_password: str) -> int:
        """Set a new password and end every session of the user; returns sessions revoked."""
        user = await self.users.get_or_fail(user_id)
        if user.is_federated_only:
            raise ValidationFailed(
                "Federated accounts cannot set a password here",
                code="federated_account",
            )
        if not await self.hasher.verify(current_password, user.password_hash or ""):
            raise Unauthenticated("Current password is incorrect", code="invalid_credentials")
        check_password_strength(new_password)

        await self.users.update(user_id, {"password_hash": await self.hasher.hash(new_password)})
        revoked = await self.authority.revoke_all(user_id)
        logger.info("password_changed", user_id=user_id, sessions_revoked=revoked)
        return revoked

    @store_guard
    async def email_exists(self, email: str) -> bool:
        return await self.users.get_by_email(normalize_email(email)) is not None


__all__ = ["AccountService", "check_password_strength", "normalize_email"]
