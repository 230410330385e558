"""Project schemas for API request/response."""

from datetime import datetime

from pydantic import Field, field_validator

from src.zerobase.schemas.base import CamelModel

API_KEY_NOTICE = "Store this API key safely. It won't be shown again."


class ProjectCreate(CamelModel):
    """Schema for provisioning a project."""

    name: str = Field(min_length=1, max_length=200)
    storage_mb: int | None = Field(default=None, ge=1)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name cannot be empty or whitespace only")
        return v


class ProjectCreated(CamelModel):
    """Returned once at provisioning, the only time the raw key is visible."""

    project_id: str
    name: str
    api_key: str
    message: str = API_KEY_NOTICE


class ProjectRead(CamelModel):
    """Project metadata. Never carries the API key or its hash."""

    id: str
    name: str
    authorized_urls: list[str]
    storage_quota_mb: int
    created_at: datetime


class VerifyKeyRequest(CamelModel):
    project_id: str = Field(min_length=1)
    api_key: str = Field(min_length=1)


class VerifyKeyResponse(CamelModel):
    is_valid: bool


class AuthorizedUrlRequest(CamelModel):
    url: str = Field(min_length=1, max_length=2048)


class AuthorizedUrlsResponse(CamelModel):
    urls: list[str]


class ApiKeyRotated(CamelModel):
    api_key: str
    message: str = API_KEY_NOTICE
