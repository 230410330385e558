"""Tests for tenant end-user auth against ``auth_users``."""

from datetime import timedelta

import pyotp
import pytest

from src.zerobase.core.config import get_settings
from src.zerobase.core.exceptions import (
    BadRequestError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from src.zerobase.core.security import hash_password, verify_session_token
from src.zerobase.services import TenantAuthService
from tests.helpers import FakeTenantDatabase

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

PROJECT_ID = "project_1718000000000_a1b2c3"


def user_row(**overrides):
    row = {
        "id": 1,
        "email": "ada@example.com",
        "name": "Ada",
        "password_hash": hash_password("correct horse"),
        "otp_secret": None,
        "jwt_expiry": "365d",
        "login_count": 0,
    }
    row.update(overrides)
    return row


@pytest.fixture
def tenant_db() -> FakeTenantDatabase:
    return FakeTenantDatabase()


@pytest.fixture
def auth(tenant_db) -> TenantAuthService:
    return TenantAuthService(tenant_db.connector)


class TestSignup:
    async def test_returns_public_user_and_session_token(self, auth, tenant_db):
        tenant_db.respond("INSERT INTO auth_users", [user_row()])

        session = await auth.signup(PROJECT_ID, "ada@example.com", "correct horse", "Ada")

        assert "password_hash" not in session["user"]
        assert "otp_secret" not in session["user"]
        assert verify_session_token(session["token"], PROJECT_ID) == "1"

        (insert,) = tenant_db.executed("INSERT INTO auth_users")
        assert insert.params["password_hash"].startswith("$argon2id$")
        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["status"] == 200


class TestLogin:
    async def test_success_records_login(self, auth, tenant_db):
        tenant_db.respond("WHERE email = :email", [user_row()])
        tenant_db.respond("SET last_login", [user_row(login_count=1)])

        session = await auth.login(PROJECT_ID, "ada@example.com", "correct horse", "10.0.0.1")

        assert session["user"]["login_count"] == 1
        (update,) = tenant_db.executed("SET last_login")
        assert update.params == {"id": 1, "ip": "10.0.0.1"}

    async def test_unknown_email(self, auth, tenant_db):
        with pytest.raises(NotFoundError, match="User not found"):
            await auth.login(PROJECT_ID, "nobody@example.com", "x")

    async def test_wrong_password_counts_failure(self, auth, tenant_db):
        tenant_db.respond("WHERE email = :email", [user_row()])

        with pytest.raises(UnauthorizedError, match="Invalid password"):
            await auth.login(PROJECT_ID, "ada@example.com", "wrong")

        assert tenant_db.executed("failed_attempts = COALESCE")
        assert not tenant_db.executed("SET last_login")
        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["status"] == 401

    async def test_token_lifetime_follows_user_expiry(self, auth, tenant_db, monkeypatch):
        issued = {}

        def fake_issue(user_id, project_id, ttl):
            issued["ttl"] = ttl
            return "token"

        monkeypatch.setattr("src.zerobase.services.auth_service.issue_session_token", fake_issue)
        tenant_db.respond("WHERE email = :email", [user_row()])
        tenant_db.respond("SET last_login", [user_row(jwt_expiry="12h")])

        await auth.login(PROJECT_ID, "ada@example.com", "correct horse")

        assert issued["ttl"] == timedelta(hours=12)

    async def test_unreadable_expiry_falls_back_to_default(self, auth):
        assert auth._token_ttl({"jwt_expiry": "forever"}) == timedelta(days=365)
        assert auth._token_ttl({}) == timedelta(days=365)


class TestGoogle:
    async def test_not_configured(self, tenant_db):
        settings = get_settings().model_copy(update={"google_client_id": None})
        auth = TenantAuthService(tenant_db.connector, settings=settings)
        with pytest.raises(ServiceUnavailableError):
            await auth.google(PROJECT_ID, "credential")

    async def test_invalid_credential(self, tenant_db, monkeypatch):
        def reject(credential, request, audience):
            raise ValueError("Wrong number of segments in token")

        monkeypatch.setattr("google.oauth2.id_token.verify_oauth2_token", reject)
        settings = get_settings().model_copy(update={"google_client_id": "client-id"})
        auth = TenantAuthService(tenant_db.connector, settings=settings)

        with pytest.raises(UnauthorizedError, match="Invalid Google credential"):
            await auth.google(PROJECT_ID, "garbage")

    async def test_first_sign_in_creates_user(self, tenant_db, monkeypatch):
        def accept(credential, request, audience):
            assert audience == "client-id"
            return {"sub": "g-123", "email": "ada@example.com", "name": "Ada"}

        monkeypatch.setattr("google.oauth2.id_token.verify_oauth2_token", accept)
        tenant_db.respond("INSERT INTO auth_users", [user_row(password_hash=None)])
        tenant_db.respond("SET last_login", [user_row(password_hash=None, google_id="g-123")])
        settings = get_settings().model_copy(update={"google_client_id": "client-id"})
        auth = TenantAuthService(tenant_db.connector, settings=settings)

        session = await auth.google(PROJECT_ID, "credential", "10.0.0.1")

        (insert,) = tenant_db.executed("INSERT INTO auth_users")
        assert insert.params == {"email": "ada@example.com", "google_id": "g-123", "name": "Ada"}
        assert session["user"]["google_id"] == "g-123"


class TestUsers:
    async def test_list_hides_secrets(self, auth, tenant_db):
        tenant_db.respond("SELECT * FROM auth_users ORDER BY id", [user_row(otp_secret="s")])
        (user,) = await auth.list_users(PROJECT_ID)
        assert "password_hash" not in user and "otp_secret" not in user

    async def test_delete_unknown_user(self, auth, tenant_db):
        with pytest.raises(NotFoundError):
            await auth.delete_user(PROJECT_ID, 9)
        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["status"] == 404

    async def test_delete(self, auth, tenant_db):
        tenant_db.respond("DELETE FROM auth_users", [{"id": 9}])
        await auth.delete_user(PROJECT_ID, 9)
        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["message"] == "User deleted successfully"

    async def test_update_expiry_validates_format(self, auth, tenant_db):
        with pytest.raises(BadRequestError):
            await auth.update_expiry(PROJECT_ID, 1, "10x")
        assert not tenant_db.executed("SET jwt_expiry")
        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["status"] == 400

    async def test_update_expiry(self, auth, tenant_db):
        tenant_db.respond("SET jwt_expiry", [{"id": 1}])
        await auth.update_expiry(PROJECT_ID, 1, "30m")
        (update,) = tenant_db.executed("SET jwt_expiry")
        assert update.params == {"expiry": "30m", "id": 1}
        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["endpoint"] == "/api/auth/expiry"
        assert log.params["status"] == 200

    async def test_update_expiry_unknown_user(self, auth, tenant_db):
        with pytest.raises(NotFoundError):
            await auth.update_expiry(PROJECT_ID, 9, "30m")
        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["status"] == 404

    async def test_init_migrates_system_tables(self, auth, tenant_db):
        results = await auth.init(PROJECT_ID)
        assert [r.table for r in results] == ["auth_users", "logs"]


class TestOtpSetup:
    async def test_stores_a_fresh_totp_secret(self, auth, tenant_db):
        tenant_db.respond("SET otp_secret", [{"email": "ada@example.com"}])

        result = await auth.setup_otp(PROJECT_ID, 1)

        secret = result["secret"]
        assert len(secret) == 32
        assert set(secret) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")
        (update,) = tenant_db.executed("SET otp_secret")
        assert update.params == {"secret": secret, "id": 1}

        parsed = pyotp.parse_uri(result["qr_code_url"])
        assert parsed.secret == secret
        assert parsed.name == "ada@example.com"
        assert parsed.issuer == get_settings().app_name
        assert pyotp.TOTP(secret).verify(parsed.now())

    async def test_each_setup_rotates_the_secret(self, auth, tenant_db):
        tenant_db.respond("SET otp_secret", [{"email": "ada@example.com"}])
        first = await auth.setup_otp(PROJECT_ID, 1)
        second = await auth.setup_otp(PROJECT_ID, 1)
        assert first["secret"] != second["secret"]

    async def test_unknown_user(self, auth, tenant_db):
        with pytest.raises(NotFoundError, match="User not found"):
            await auth.setup_otp(PROJECT_ID, 9)
        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["status"] == 404
        assert log.params["endpoint"] == "/api/auth/otp/setup"
