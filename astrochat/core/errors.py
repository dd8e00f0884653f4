from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse

from astrochat.core.store.base import StoreError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class DomainError(Exception):
    """Domain-level exception normalized by the global error handler."""

    kind = "domain"
    default_status = status.HTTP_400_BAD_REQUEST
    default_code: str | None = None

    def __init__(
        self,
        detail: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code or self.default_status
        self.code = code or self.default_code or self.kind

    def to_payload(self) -> dict[str, Any]:
        return {"error": {"kind": self.kind, "code": self.code, "detail": self.detail}}


class Unauthenticated(DomainError):
    kind = "unauthenticated"
    default_status = status.HTTP_401_UNAUTHORIZED


class Forbidden(DomainError):
    kind = "forbidden"
    default_status = status.HTTP_403_FORBIDDEN


class NotContact(Forbidden):
    default_code = "not_contact"


class NotFound(DomainError):
    kind = "not_found"
    default_status = status.HTTP_404_NOT_FOUND


class Conflict(DomainError):
    kind = "conflict"
    default_status = status.HTTP_409_CONFLICT


class DuplicateRequest(Conflict):
    default_code = "duplicate_request"


class AlreadyContacts(Conflict):
    default_code = "already_contacts"


class SelfRequest(Conflict):
    default_code = "self_request"


class EmailTaken(Conflict):
    default_code = "email_taken"


class ValidationFailed(DomainError):
    kind = "validation"
    default_status = status.HTTP_400_BAD_REQUEST


class EmptyContent(ValidationFailed):
    default_code = "empty_content"


class StoreUnavailable(DomainError):
    kind = "store_unavailable"
    default_status = status.HTTP_503_SERVICE_UNAVAILABLE


def store_guard(func: F) -> F:
    """Translate adapter failures raised inside an operation into StoreUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except StoreError as exc:
            logger.error("store_call_failed", operation=func.__qualname__, error=str(exc))
            raise StoreUnavailable("Storage is temporarily unavailable") from exc

    return wrapper  # type: ignore[return-value]


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


__all__ = [
    "AlreadyContacts",
    "Conflict",
    "DomainError",
    "DuplicateRequest",
    "EmailTaken",
    "EmptyContent",
    "Forbidden",
    "NotContact",
    "NotFound",
    "SelfRequest",
    "StoreUnavailable",
    "Unauthenticated",
    "ValidationFailed",
    "domain_error_handler",
    "store_guard",
]
