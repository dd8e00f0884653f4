from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class Principal(BaseModel):
    """Identity resolved from a valid session token."""
    user_id: str
    kind: str


class IssuedToken(BaseModel):
    token: str
    expires_at: datetime


class SessionToken(BaseModel):
    """Persisted (token, user_id, expires_at) triple. Collection: ``session_tokens``."""
    id: str | None = None
    token: str
    user_id: str
    expires_at: datetime

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "SessionToken":
        return cls(
            id=doc.get("id"),
            token=doc["token"],
            user_id=doc["user_id"],
            # first-generation records store expires_date
            expires_at=doc.get("expires_at") or doc["expires_date"],
        )

    def to_document(self) -> dict[str, Any]:
        return {"token": self.token, "user_id": self.user_id, "expires_at": self.expires_at}
