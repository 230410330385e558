from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "ZeroBase"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True

    # Main (control-plane) database. Tenant databases live on the same server
    # and are reached by swapping the database name on this URL.
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 10
    # Apply Alembic migrations to the main database during startup
    run_migrations_on_startup: bool = False

    # Auth
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    session_token_default_expiry: str = "365d"
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536
    argon2_parallelism: int = 1
    google_client_id: str | None = None  # Google sign-in is disabled when unset

    # Access gate
    # When True, requests without an Origin header must present the project API key.
    require_api_key_without_origin: bool = False

    # Realtime: per-connection send timeout (seconds) and outbox size before a
    # lagging client is dropped
    realtime_send_timeout: float = 5.0
    realtime_max_pending: int = 100

    # Storage
    storage_path: str = "/storage"
    default_storage_quota_mb: int = 1024
    max_upload_mb: int = 50
    storage_quota_grace_mb: int = 50
    allowed_upload_types: list[str] = [
        "application/pdf",
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/gif",
        "image/webp",
    ]

    # CORS (dashboard origins; SDK origins are handled per project by the access gate)
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:3002"]

    # Metrics
    metrics_api_key: str | None = None

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if v == "change-this-to-a-secure-random-string":
            raise ValueError(
                "JWT_SECRET_KEY must be changed from default value. "
                "Generate a secure secret with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Reject wildcards, credentials are always allowed."""
        for origin in v:
            if origin == "*":
                raise ValueError(
                    "CORS wildcard '*' is not allowed when allow_credentials=True. "
                    "Specify explicit origins instead."
                )
        return v

    @field_validator("session_token_default_expiry")
    @classmethod
    def validate_default_expiry(cls, v: str) -> str:
        from src.zerobase.core.security.validators import parse_expiry

        parse_expiry(v)
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
