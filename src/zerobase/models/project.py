"""Project model - tenant registry in the main database."""

from datetime import datetime

from sqlalchemy import Column, Text, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlmodel import Field, SQLModel

from src.zerobase.models.base import utc_now


class Project(SQLModel, table=True):
    """A tenant. Its id is also the name of its physical database."""

    __tablename__ = "projects"

    id: str = Field(primary_key=True, max_length=63)
    name: str = Field(max_length=200)
    api_key_hash: str
    authorized_urls: list[str] = Field(
        default_factory=list,
        sa_column=Column(ARRAY(Text), nullable=False, server_default=text("'{}'")),
    )
    storage_quota_mb: int = Field(default=1024)
    created_at: datetime = Field(default_factory=utc_now, index=True)
