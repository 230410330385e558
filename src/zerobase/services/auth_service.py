"""Tenant end-user authentication against a project's ``auth_users`` table."""

import asyncio
from datetime import timedelta
from typing import Any

import pyotp
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from sqlalchemy import text

from src.zerobase.core.config import Settings, get_settings
from src.zerobase.core.db import TenantConnector, tenant_connection
from src.zerobase.core.exceptions import (
    BadRequestError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from src.zerobase.core.logging import get_logger
from src.zerobase.core.security import (
    hash_password,
    issue_session_token,
    parse_expiry,
    verify_password,
)
from src.zerobase.services.document_service import public_row
from src.zerobase.services.log_service import TenantLogWriter
from src.zerobase.services.schema_service import MigrationResult, SchemaManager

logger = get_logger(__name__)

USERS = "auth_users"

_SELECT_BY_EMAIL = text("SELECT * FROM auth_users WHERE email = :email")
_SELECT_BY_GOOGLE = text(
    "SELECT * FROM auth_users WHERE google_id = :google_id OR email = :email "
    "ORDER BY (google_id = :google_id) DESC NULLS LAST LIMIT 1"
)
_INSERT_PASSWORD_USER = text(
    "INSERT INTO auth_users (email, password_hash, name) "
    "VALUES (:email, :password_hash, :name) RETURNING *"
)
_INSERT_GOOGLE_USER = text(
    "INSERT INTO auth_users (email, google_id, name, email_verified) "
    "VALUES (:email, :google_id, :name, true) RETURNING *"
)
_LINK_GOOGLE_ID = text(
    "UPDATE auth_users SET google_id = :google_id WHERE id = :id AND google_id IS NULL"
)
_RECORD_LOGIN = text(
    "UPDATE auth_users SET last_login = NOW(), last_ip = :ip, "
    "login_count = COALESCE(login_count, 0) + 1 WHERE id = :id RETURNING *"
)
_RECORD_FAILED_LOGIN = text(
    "UPDATE auth_users SET failed_attempts = COALESCE(failed_attempts, 0) + 1, "
    "last_failed_attempt = NOW() WHERE id = :id"
)
_LIST_USERS = text("SELECT * FROM auth_users ORDER BY id")
_SELECT_CURRENT_USER = text(
    "SELECT id, email, name, status, email_verified, jwt_expiry, created_at "
    "FROM auth_users WHERE id = :id"
)
_DELETE_USER = text("DELETE FROM auth_users WHERE id = :id RETURNING id")
_UPDATE_EXPIRY = text("UPDATE auth_users SET jwt_expiry = :expiry WHERE id = :id RETURNING id")
_SET_OTP_SECRET = text(
    "UPDATE auth_users SET otp_secret = :secret WHERE id = :id RETURNING email"
)


class TenantAuthService:
    """Signup, login and user management for the users of one project."""

    def __init__(
        self,
        connector: TenantConnector = tenant_connection,
        log_writer: TenantLogWriter | None = None,
        settings: Settings | None = None,
    ):
        self._connector = connector
        self._log_writer = log_writer or TenantLogWriter(connector)
        self.settings = settings or get_settings()

    def _token_ttl(self, user: dict[str, Any]) -> timedelta:
        """The user's own ``jwt_expiry``, or the configured default if unset or unreadable."""
        try:
            return parse_expiry(user.get("jwt_expiry") or "")
        except ValueError:
            return parse_expiry(self.settings.session_token_default_expiry)

    def _session(self, project_id: str, user: dict[str, Any]) -> dict[str, Any]:
        token = issue_session_token(user["id"], project_id, self._token_ttl(user))
        return {"user": public_row(USERS, user), "token": token}

    async def init(self, project_id: str) -> list[MigrationResult]:
        """Create ``auth_users`` if missing and bring both system tables up to date."""
        return await SchemaManager(self._connector).init_system_tables(project_id)

    async def signup(
        self, project_id: str, email: str, password: str, name: str | None = None
    ) -> dict[str, Any]:
        async with self._log_writer.record(
            project_id, "/api/auth/signup", "POST", "User signup successful", {"email": email}
        ):
            password_hash = hash_password(password)
            async with self._connector(project_id) as conn:
                result = await conn.execute(
                    _INSERT_PASSWORD_USER,
                    {"email": email, "password_hash": password_hash, "name": name},
                )
                user = dict(result.mappings().one())
        logger.info("Tenant user signed up", project_id=project_id, user_id=user["id"])
        return self._session(project_id, user)

    async def login(
        self, project_id: str, email: str, password: str, ip: str | None = None
    ) -> dict[str, Any]:
        """Password login.

        Raises:
            NotFoundError: No user with this email.
            UnauthorizedError: Wrong password. The failure is counted on the user.
        """
        async with self._log_writer.record(
            project_id, "/api/auth/login", "POST", "User login successful", {"email": email}
        ):
            async with self._connector(project_id) as conn:
                found = (await conn.execute(_SELECT_BY_EMAIL, {"email": email})).mappings().first()
                if found is None:
                    raise NotFoundError("User not found")
                if not verify_password(password, found["password_hash"]):
                    await conn.execute(_RECORD_FAILED_LOGIN, {"id": found["id"]})
                    raise UnauthorizedError("Invalid password")
                result = await conn.execute(_RECORD_LOGIN, {"id": found["id"], "ip": ip})
                user = dict(result.mappings().one())
        return self._session(project_id, user)

    async def google(
        self, project_id: str, credential: str, ip: str | None = None
    ) -> dict[str, Any]:
        """Sign in with a Google ID token, creating the user on first sight.

        Raises:
            ServiceUnavailableError: Google sign-in is not configured.
            UnauthorizedError: The ID token did not verify.
        """
        client_id = self.settings.google_client_id
        if not client_id:
            raise ServiceUnavailableError("Google sign-in is not configured")

        async with self._log_writer.record(
            project_id, "/api/auth/google", "POST", "Google sign-in successful"
        ):
            try:
                claims = await asyncio.to_thread(
                    id_token.verify_oauth2_token,
                    credential,
                    google_requests.Request(),
                    client_id,
                )
            except ValueError as e:
                raise UnauthorizedError("Invalid Google credential") from e

            google_id, email = claims["sub"], claims.get("email")
            async with self._connector(project_id) as conn:
                found = (
                    await conn.execute(_SELECT_BY_GOOGLE, {"google_id": google_id, "email": email})
                ).mappings().first()
                if found is None:
                    if not email:
                        raise BadRequestError("Google account has no email address")
                    result = await conn.execute(
                        _INSERT_GOOGLE_USER,
                        {"email": email, "google_id": google_id, "name": claims.get("name")},
                    )
                    found = result.mappings().one()
                else:
                    await conn.execute(_LINK_GOOGLE_ID, {"google_id": google_id, "id": found["id"]})
                result = await conn.execute(_RECORD_LOGIN, {"id": found["id"], "ip": ip})
                user = dict(result.mappings().one())
        return self._session(project_id, user)

    async def list_users(self, project_id: str) -> list[dict[str, Any]]:
        async with self._connector(project_id) as conn:
            rows = (await conn.execute(_LIST_USERS)).mappings().all()
        return [public_row(USERS, dict(row)) for row in rows]

    async def get_user(self, project_id: str, user_id: int) -> dict[str, Any]:
        async with self._connector(project_id) as conn:
            found = (await conn.execute(_SELECT_CURRENT_USER, {"id": user_id})).mappings().first()
        if found is None:
            raise NotFoundError("User not found")
        return dict(found)

    async def delete_user(self, project_id: str, user_id: int) -> None:
        async with self._log_writer.record(
            project_id,
            f"/api/auth/users/{user_id}",
            "DELETE",
            "User deleted successfully",
            {"user_id": user_id},
        ):
            async with self._connector(project_id) as conn:
                deleted = (await conn.execute(_DELETE_USER, {"id": user_id})).scalar()
            if deleted is None:
                raise NotFoundError("User not found")

    async def update_expiry(self, project_id: str, user_id: int, expiry: str) -> None:
        """Set how long the user's future session tokens live (``30m``, ``12h``, ``365d``...)."""
        async with self._log_writer.record(
            project_id,
            "/api/auth/expiry",
            "PUT",
            "Session expiry updated",
            {"user_id": user_id, "expiry": expiry},
        ):
            try:
                parse_expiry(expiry)
            except ValueError as e:
                raise BadRequestError(str(e)) from e
            async with self._connector(project_id) as conn:
                updated = (
                    await conn.execute(_UPDATE_EXPIRY, {"expiry": expiry.strip(), "id": user_id})
                ).scalar()
            if updated is None:
                raise NotFoundError("User not found")

    async def setup_otp(self, project_id: str, user_id: int) -> dict[str, str]:
        """Generate and store a new TOTP secret for the user.

        Replaces any previous secret. Returns the base32 secret and an
        ``otpauth://`` URI for authenticator apps to render as a QR code.
        """
        secret = pyotp.random_base32()
        async with self._log_writer.record(
            project_id, "/api/auth/otp/setup", "POST", "OTP secret generated", {"user_id": user_id}
        ):
            async with self._connector(project_id) as conn:
                email = (
                    await conn.execute(_SET_OTP_SECRET, {"secret": secret, "id": user_id})
                ).scalar()
            if email is None:
                raise NotFoundError("User not found")
        uri = pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=self.settings.app_name)
        return {"secret": secret, "qr_code_url": uri}
