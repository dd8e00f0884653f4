from __future__ import annotations

from fastapi import APIRouter, Depends, status

from astrochat.container import Services
from astrochat.core.security.deps import get_services, require_member, require_mortal
from astrochat.core.security.token_model import Principal
from astrochat.domains.contacts.schema import (
    ContactSummary,
    FriendRequestCreate,
    FriendRequestResult,
    PendingRequestOut,
    RequestOutcome,
)

router = APIRouter(prefix="/contacts", tags=["contacts"])

_OUTCOME_MESSAGES = {
    RequestOutcome.PENDING: "Friend request sent",
    RequestOutcome.ACCEPTED: "You are now contacts",
}


@router.post("/requests", response_model=FriendRequestResult, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    payload: FriendRequestCreate,
    principal: Principal = Depends(require_mortal),
    services: Services = Depends(get_services),
):
    outcome = await services.contacts.send_request(principal.user_id, payload.friend_code)
    return FriendRequestResult(status=outcome, message=_OUTCOME_MESSAGES[outcome])


@router.post("/requests/{sender_id}/accept")
async def accept_friend_request(
    sender_id: str,
    principal: Principal = Depends(require_mortal),
    services: Services = Depends(get_services),
):
    await services.contacts.accept_request(principal.user_id, sender_id)
    return {"status": "accepted"}


@router.post("/requests/{sender_id}/reject")
async def reject_friend_request(
    sender_id: str,
    principal: Principal = Depends(require_member),
    services: Services = Depends(get_services),
):
    await services.contacts.reject_request(principal.user_id, sender_id)
    return {"status": "rejected"}


@router.get("/requests", response_model=list[PendingRequestOut])
async def list_friend_requests(
    principal: Principal = Depends(require_mortal),
    services: Services = Depends(get_services),
):
    pending = await services.contacts.list_pending_requests(principal.user_id)
    return [PendingRequestOut(**req.model_dump()) for req in pending]


@router.get("", response_model=list[ContactSummary])
async def list_contacts(
    principal: Principal = Depends(require_mortal),
    services: Services = Depends(get_services),
):
    return await services.contacts.list_contacts(principal.user_id)


__all__ = ["router"]
