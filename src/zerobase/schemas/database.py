"""Schemas for the tenant database surface: tables, documents, indexes, extensions.

Names arrive as plain strings and are validated by the schema manager, which
raises the specific ``InvalidIdentifierError``/``UnsupportedTypeError``.
"""

from typing import Any

from pydantic import Field

from src.zerobase.schemas.base import CamelModel


class ProjectScoped(CamelModel):
    project_id: str = Field(min_length=1)


class TableCreate(ProjectScoped):
    table_name: str = Field(min_length=1)


class ColumnCreate(ProjectScoped):
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)


class ColumnInfo(CamelModel):
    column_name: str
    data_type: str
    udt_name: str
    character_maximum_length: int | None = None
    is_nullable: str
    column_default: str | None = None


class TableInfo(CamelModel):
    name: str
    columns: list[ColumnInfo]


class TablesResponse(CamelModel):
    tables: list[TableInfo]


class DocumentCreate(ProjectScoped):
    document: dict[str, Any]


class DocumentsResponse(CamelModel):
    documents: list[dict[str, Any]]


class IndexCreate(ProjectScoped):
    columns: list[str] = Field(default_factory=list)
    unique: bool = False
    method: str = "btree"


class IndexCreated(CamelModel):
    success: bool = True
    index_name: str


class IndexInfo(CamelModel):
    name: str
    definition: str
    columns: list[str]
    is_unique: bool


class IndexesResponse(CamelModel):
    indexes: list[IndexInfo]


class ExtensionRequest(ProjectScoped):
    name: str = Field(min_length=1)


class ExtensionInfo(CamelModel):
    name: str
    default_version: str | None = None
    installed_version: str | None = None
    comment: str | None = None
    installed: bool


class ExtensionsResponse(CamelModel):
    extensions: list[ExtensionInfo]
