"""Tenant end-user auth endpoints (the SDK's sign-up and sign-in)."""

from typing import Any

from fastapi import APIRouter, Request

from src.zerobase.api.dependencies import (
    AuthServiceDep,
    GatedProject,
    ProjectServiceDep,
    SessionUserId,
)
from src.zerobase.core.exceptions import ForbiddenError
from src.zerobase.schemas.auth import (
    AuthInitRequest,
    AuthResponse,
    ExpiryUpdate,
    GoogleAuthRequest,
    LoginRequest,
    OtpSetupRequest,
    OtpSetupResponse,
    SignupRequest,
)
from src.zerobase.schemas.base import SuccessResponse

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post(
    "/init",
    response_model=SuccessResponse,
    summary="Initialize auth tables",
    description="Create ``auth_users`` if missing and add any new columns to the system "
    "tables. Idempotent. Called by the dashboard, not behind the access gate.",
    responses={404: {"description": "Project not found"}},
)
async def init_auth(
    data: AuthInitRequest, projects: ProjectServiceDep, auth: AuthServiceDep
) -> SuccessResponse:
    project = await projects.get_project(data.project_id)
    await auth.init(project.id)
    return SuccessResponse()


@router.post("/signup", response_model=AuthResponse, summary="Sign up")
async def signup(data: SignupRequest, access: GatedProject, auth: AuthServiceDep) -> AuthResponse:
    session = await auth.signup(access.project_id, data.email, data.password, data.name)
    return AuthResponse.model_validate(session)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in",
    responses={
        401: {"description": "Invalid password"},
        404: {"description": "User not found"},
    },
)
async def login(
    data: LoginRequest, request: Request, access: GatedProject, auth: AuthServiceDep
) -> AuthResponse:
    session = await auth.login(access.project_id, data.email, data.password, _client_ip(request))
    return AuthResponse.model_validate(session)


@router.post(
    "/google",
    response_model=AuthResponse,
    summary="Sign in with Google",
    responses={
        401: {"description": "Invalid Google credential"},
        503: {"description": "Google sign-in not configured"},
    },
)
async def google_auth(
    data: GoogleAuthRequest, request: Request, access: GatedProject, auth: AuthServiceDep
) -> AuthResponse:
    session = await auth.google(access.project_id, data.credential, _client_ip(request))
    return AuthResponse.model_validate(session)


@router.get("/users", summary="List users")
async def list_users(access: GatedProject, auth: AuthServiceDep) -> list[dict[str, Any]]:
    return await auth.list_users(access.project_id)


@router.delete(
    "/users/{user_id}",
    response_model=SuccessResponse,
    summary="Delete user",
    responses={404: {"description": "User not found"}},
)
async def delete_user(user_id: int, access: GatedProject, auth: AuthServiceDep) -> SuccessResponse:
    await auth.delete_user(access.project_id, user_id)
    return SuccessResponse(message="User deleted successfully")


@router.get(
    "/me",
    summary="Current user",
    description="Requires ``Authorization: Bearer <session token>``.",
    responses={403: {"description": "Invalid or expired session token"}},
)
async def get_me(
    user_id: SessionUserId, access: GatedProject, auth: AuthServiceDep
) -> dict[str, Any]:
    return await auth.get_user(access.project_id, user_id)


@router.put(
    "/expiry",
    response_model=SuccessResponse,
    summary="Set session lifetime",
    description="Set the caller's session token lifetime, e.g. ``30m``, ``12h``, ``365d``, "
    "``2w``. ``userId`` may be omitted; any id other than the caller's is refused.",
    responses={403: {"description": "Invalid session token or another user's id"}},
)
async def update_expiry(
    data: ExpiryUpdate, user_id: SessionUserId, access: GatedProject, auth: AuthServiceDep
) -> SuccessResponse:
    if data.user_id is not None and data.user_id != user_id:
        raise ForbiddenError("Cannot change another user's session expiry")
    await auth.update_expiry(access.project_id, user_id, data.expiry)
    return SuccessResponse()


@router.post(
    "/otp/setup",
    response_model=OtpSetupResponse,
    summary="Set up one-time passwords",
    description="Generate a TOTP secret for the caller and return it with an ``otpauth://`` "
    "URI to show as a QR code. Requires ``Authorization: Bearer <session token>``.",
    responses={403: {"description": "Invalid or expired session token"}},
)
async def setup_otp(
    data: OtpSetupRequest, user_id: SessionUserId, access: GatedProject, auth: AuthServiceDep
) -> OtpSetupResponse:
    return OtpSetupResponse.model_validate(await auth.setup_otp(access.project_id, user_id))
