from __future__ import annotations

import secrets
from datetime import datetime
from typing import Protocol

from jose import JWTError, jwt

from astrochat.core.settings import Settings, get_settings


class JWTManager(Protocol):
    def create_token(self, user_id: str, expires_at: datetime) -> str:
        """Generate signed session token"""
        raise NotImplementedError

    def decode_token(self, token: str) -> dict:
        """Verify the signature and return the claims"""
        raise NotImplementedError


class JWTManagerImpl:
    """Signs session tokens; the random ``jti`` carries 256 bits of entropy."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def create_token(self, user_id: str, expires_at: datetime) -> str:
        data = {
            "sub": user_id,
            "jti": secrets.token_urlsafe(32),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(
            data,
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm,
        )

    def decode_token(self, token: str) -> dict:
        # expiry is judged against the persisted record and the injected clock
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise ValueError("Invalid token") from exc
