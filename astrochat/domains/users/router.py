from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from astrochat.container import Services
from astrochat.core.security.deps import get_bearer_token, get_services, require_member
from astrochat.core.security.token_model import Principal
from astrochat.domains.users.model import User
from astrochat.domains.users.schema import (
    EmailCheckResponse,
    LoginRequest,
    LoginResponse,
    PasswordChangeRequest,
    RegisterRequest,
    UserOut,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        name=user.name,
        email=user.email,
        avatar_url=user.avatar_url,
        friend_code=user.friend_code,
        kind=user.kind.value,
    )


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, services: Services = Depends(get_services)):
    user = await services.accounts.register(
        payload.name,
        payload.email,
        payload.password,
        avatar_url=payload.avatar_url,
    )
    return _user_out(user)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, services: Services = Depends(get_services)):
    user, issued = await services.accounts.login(payload.email, payload.password, remember_me=payload.remember_me)
    return LoginResponse(token=issued.token, expires_at=issued.expires_at, user=_user_out(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    principal: Principal = Depends(require_member),
    token: str | None = Depends(get_bearer_token),
    services: Services = Depends(get_services),
):
    await services.accounts.logout(token or "")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/password")
async def change_password(
    payload: PasswordChangeRequest,
    principal: Principal = Depends(require_member),
    services: Services = Depends(get_services),
):
    revoked = await services.accounts.change_password(
        principal.user_id,
        payload.current_password,
        payload.new_password,
    )
    return {"sessions_revoked": revoked}


@router.get("/check-email", response_model=EmailCheckResponse)
async def check_email(
    email: str = Query(..., min_length=3),
    services: Services = Depends(get_services),
):
    return EmailCheckResponse(exists=await services.accounts.email_exists(email))


__all__ = ["router"]
