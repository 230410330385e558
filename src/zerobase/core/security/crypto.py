"""Credential store - API key and password hashing, session tokens."""

from datetime import UTC, datetime, timedelta
from functools import lru_cache
from uuid import uuid4

import argon2
from jose import ExpiredSignatureError, JWTError, jwt

from src.zerobase.core.config import get_settings
from src.zerobase.core.exceptions import ExpiredTokenError, InvalidTokenError

SESSION_TOKEN_TYPE = "session"


@lru_cache
def _password_hasher() -> argon2.PasswordHasher:
    """Create the Argon2id hasher with cost parameters from config."""
    settings = get_settings()
    return argon2.PasswordHasher(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )


def _verify(raw: str, hashed: str | None) -> bool:
    if not raw or not hashed:
        return False
    try:
        return _password_hasher().verify(hashed, raw)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.VerificationError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def generate_api_key() -> tuple[str, str]:
    """Generate a project API key. Returns (raw_key, hashed_key).

    The raw key is shown to the caller once and never stored.
    """
    api_key = str(uuid4())
    return api_key, hash_api_key(api_key)


def hash_api_key(raw: str) -> str:
    """Hash a project API key using Argon2id."""
    return _password_hasher().hash(raw)


def verify_api_key(raw: str | None, hashed: str | None) -> bool:
    """Verify an API key against its hash. Returns False on any error."""
    return _verify(raw or "", hashed)


def hash_password(password: str) -> str:
    """Hash a tenant user's password using Argon2id."""
    return _password_hasher().hash(password)


def verify_password(password: str, hashed: str | None) -> bool:
    """Verify password against hash. Returns False on any error."""
    return _verify(password, hashed)


def issue_session_token(user_id: int | str, project_id: str, ttl: timedelta) -> str:
    """Mint a signed session token for a user of one tenant database."""
    settings = get_settings()
    to_encode = {
        "sub": str(user_id),
        "project_id": project_id,
        "exp": datetime.now(UTC) + ttl,
        "type": SESSION_TOKEN_TYPE,
    }
    return jwt.encode(  # type: ignore[no-any-return]
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_session_token(token: str | None, project_id: str) -> str:
    """Verify a session token by signature and expiry. Returns the user id.

    There is no server-side revocation list, a token stays valid until it expires.

    Raises:
        ExpiredTokenError: The token's expiry has passed.
        InvalidTokenError: Bad signature, wrong type, missing subject, or the
            token belongs to a different project.
    """
    if not token:
        raise InvalidTokenError("Invalid token")

    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError as e:
        raise ExpiredTokenError("Token expired") from e
    except JWTError as e:
        raise InvalidTokenError("Invalid token") from e

    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise InvalidTokenError("Invalid token type")
    if payload.get("project_id") != project_id:
        raise InvalidTokenError("Token was not issued for this project")
    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Invalid token payload")
    return str(user_id)
