from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=8, max_length=256)
    avatar_url: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    remember_me: bool = False


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=256)


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    avatar_url: str | None = None
    friend_code: str
    kind: str


class LoginResponse(BaseModel):
    token: str
    expires_at: datetime
    user: UserOut


class EmailCheckResponse(BaseModel):
    exists: bool


__all__ = [
    "EmailCheckResponse",
    "LoginRequest",
    "LoginResponse",
    "PasswordChangeRequest",
    "RegisterRequest",
    "UserOut",
]
