from __future__ import annotations

from typing import Mapping

from fastapi import Depends, Request

from astrochat.container import Services
from astrochat.core.security.token_model import Principal
from astrochat.domains.users.model import UserKind


def get_services(request: Request) -> Services:
    return request.app.state.services


def bearer_token(headers: Mapping[str, str]) -> str | None:
    auth = headers.get("authorization") or ""
    if not auth.lower().startswith("bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def get_bearer_token(request: Request) -> str | None:
    return bearer_token(request.headers)


def require_kinds(*kinds: str):
    """Dependency that authorizes the bearer token for the given user kinds."""

    async def _dep(
        token: str | None = Depends(get_bearer_token),
        services: Services = Depends(get_services),
    ) -> Principal:
        return await services.authority.authorize(token, kinds or None)

    return _dep


require_mortal = require_kinds(UserKind.MORTAL)
require_member = require_kinds(UserKind.MORTAL, UserKind.ADMIN)


__all__ = [
    "bearer_token",
    "get_bearer_token",
    "get_services",
    "require_kinds",
    "require_member",
    "require_mortal",
]
