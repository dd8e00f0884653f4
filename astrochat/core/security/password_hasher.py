from __future__ import annotations

from typing import Protocol

from argon2 import PasswordHasher as Argon2Lib
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher(Protocol):
    async def hash(self, password: str) -> str:
        """Return hashed password"""
        raise NotImplementedError

    async def verify(self, password: str, hashed: str) -> bool:
        """Verify password"""
        raise NotImplementedError

    def needs_rehash(self, hashed: str) -> bool:
        """True when the stored hash was made with outdated parameters"""
        raise NotImplementedError


class Argon2Hasher:
    """argon2-cffi behind the async hasher interface.

    Malformed stored hashes (for example bcrypt hashes carried over from older
    accounts) verify as a mismatch instead of raising.
    """

    def __init__(self, hasher: Argon2Lib | None = None) -> None:
        self._hasher = hasher or Argon2Lib()

    async def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    async def verify(self, password: str, hashed: str) -> bool:
        try:
            return self._hasher.verify(hashed, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, hashed: str) -> bool:
        try:
            return self._hasher.check_needs_rehash(hashed)
        except InvalidHashError:
            return True


__all__ = ["Argon2Hasher", "PasswordHasher"]
