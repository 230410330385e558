"""Schemas for tenant end-user auth (users stored in each project's ``auth_users``)."""

from typing import Any

from pydantic import EmailStr, Field

from src.zerobase.schemas.base import CamelModel
from src.zerobase.schemas.database import ProjectScoped


class AuthInitRequest(ProjectScoped):
    pass


class SignupRequest(ProjectScoped):
    email: EmailStr
    password: str = Field(min_length=6, max_length=200)
    name: str | None = Field(default=None, max_length=255)


class LoginRequest(ProjectScoped):
    email: EmailStr
    password: str = Field(min_length=1)


class GoogleAuthRequest(ProjectScoped):
    credential: str = Field(min_length=1)


class ExpiryUpdate(ProjectScoped):
    # Defaults to the session user; any other id is refused
    user_id: int | None = None
    expiry: str = Field(min_length=2, max_length=10)


class OtpSetupRequest(ProjectScoped):
    pass


class OtpSetupResponse(CamelModel):
    secret: str
    qr_code_url: str


class AuthResponse(CamelModel):
    user: dict[str, Any]
    token: str
