from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from astrochat.container import Services
from astrochat.core.security.deps import get_services, require_mortal
from astrochat.core.security.token_model import Principal
from astrochat.domains.messages.schema import (
    MarkReadResult,
    MessageOut,
    SendMessageRequest,
    SendMessageResult,
)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/{contact_id}", response_model=list[MessageOut])
async def list_conversation(
    contact_id: str,
    limit: int | None = Query(default=None),
    before: datetime | None = Query(default=None),
    principal: Principal = Depends(require_mortal),
    services: Services = Depends(get_services),
):
    messages = await services.ledger.list_conversation(principal.user_id, contact_id, limit=limit, before=before)
    return [MessageOut(**m.model_dump(exclude={"participants"})) for m in messages]


@router.post("", response_model=SendMessageResult, status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: SendMessageRequest,
    principal: Principal = Depends(require_mortal),
    services: Services = Depends(get_services),
):
    message = await services.ledger.send(principal.user_id, payload.receiver_id, payload.content)
    return SendMessageResult(message_id=message.id, created_at=message.created_at)


@router.post("/{contact_id}/read", response_model=MarkReadResult)
async def mark_read(
    contact_id: str,
    principal: Principal = Depends(require_mortal),
    services: Services = Depends(get_services),
):
    return MarkReadResult(marked=await services.ledger.mark_read(principal.user_id, contact_id))


__all__ = ["router"]
