from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

USERS_COLLECTION = "users"
USER_SCHEMA_VERSION = 2


class UserKind(str, Enum):
    MORTAL = "mortal"
    ADMIN = "admin"


class PendingRequest(BaseModel):
    """Directed, unresolved friend invitation embedded in the receiver's record."""

    sender_id: str
    sender_name: str
    sender_avatar: str = ""
    received_at: datetime


class LastMessage(BaseModel):
    content: str = ""
    sent_at: datetime | None = None
    unread: bool = False


class User(BaseModel):
    id: str
    name: str
    email: str
    password_hash: str | None = None
    avatar_url: str | None = None
    kind: UserKind = UserKind.MORTAL
    friend_code: str
    contacts: list[str] = Field(default_factory=list)
    pending_requests: list[PendingRequest] = Field(default_factory=list)
    last_message_with: dict[str, LastMessage] = Field(default_factory=dict)
    status: int = 1
    created_at: datetime | None = None
    schema_version: int = USER_SCHEMA_VERSION

    @property
    def is_federated_only(self) -> bool:
        return not self.password_hash

    def pending_from(self, sender_id: str) -> PendingRequest | None:
        return next((req for req in self.pending_requests if req.sender_id == sender_id), None)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "User":
        return cls.model_validate(upgrade_user_document(doc))

    def to_document(self) -> dict[str, Any]:
        doc = self.model_dump(mode="python", exclude={"id"})
        doc["kind"] = self.kind.value
        return doc


def _upgrade_v1(doc: dict[str, Any]) -> dict[str, Any]:
    """Shape written by the first generation of services (camelCase, ``password``)."""
    out = dict(doc)
    if "password" in out and "password_hash" not in out:
        out["password_hash"] = out.pop("password")
    if "profile_picture_url" in out and "avatar_url" not in out:
        out["avatar_url"] = out.pop("profile_picture_url")
    if "type" in out and "kind" not in out:
        out["kind"] = out.pop("type")
    out["pending_requests"] = [
        {
            "sender_id": req.get("sender_id") or req.get("senderId"),
            "sender_name": req.get("sender_name") or req.get("senderName") or "",
            "sender_avatar": req.get("sender_avatar") or req.get("senderAvatar") or "",
            "received_at": req.get("received_at") or req.get("timestamp"),
        }
        for req in out.get("pending_requests") or []
    ]
    legacy_summaries = out.pop("lastMessageWith", None) or {}
    summaries = dict(out.get("last_message_with") or {})
    for peer_id, summary in legacy_summaries.items():
        summaries.setdefault(
            peer_id,
            {
                "content": summary.get("content", ""),
                "sent_at": summary.get("sent_at") or summary.get("timestamp"),
                "unread": bool(summary.get("unread", False)),
            },
        )
    out["last_message_with"] = summaries
    out["schema_version"] = 2
    return out


_MIGRATIONS = {1: _upgrade_v1}


def upgrade_user_document(doc: dict[str, Any]) -> dict[str, Any]:
    """Bring a stored user document up to ``USER_SCHEMA_VERSION``."""
    version = int(doc.get("schema_version") or 1)
    while version < USER_SCHEMA_VERSION:
        doc = _MIGRATIONS[version](doc)
        version = int(doc["schema_version"])
    return doc


__all__ = [
    "USERS_COLLECTION",
    "USER_SCHEMA_VERSION",
    "LastMessage",
    "PendingRequest",
    "User",
    "UserKind",
    "upgrade_user_document",
]
