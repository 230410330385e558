"""Tenant database endpoints: tables, columns, documents, indexes, extensions.

Every route is behind the access gate; ``projectId`` comes from the query
string or the JSON body.
"""

from typing import Any

from fastapi import APIRouter

from src.zerobase.api.dependencies import (
    DocumentStoreDep,
    GatedProject,
    LogWriterDep,
    SchemaManagerDep,
)
from src.zerobase.schemas.base import SuccessResponse
from src.zerobase.schemas.database import (
    ColumnCreate,
    DocumentCreate,
    DocumentsResponse,
    ExtensionRequest,
    ExtensionsResponse,
    IndexCreate,
    IndexCreated,
    IndexesResponse,
    TableCreate,
    TablesResponse,
)

router = APIRouter(prefix="/db", tags=["database"])


@router.get("/tables", response_model=TablesResponse, summary="List tables")
async def list_tables(access: GatedProject, schema: SchemaManagerDep) -> TablesResponse:
    tables = await schema.list_tables(access.project_id)
    return TablesResponse.model_validate({"tables": tables})


@router.post(
    "/tables",
    response_model=SuccessResponse,
    summary="Create table",
    description="Create a table with an auto-incrementing ``id`` primary key.",
    responses={
        400: {"description": "Invalid table name"},
        409: {"description": "Table already exists"},
    },
)
async def create_table(
    data: TableCreate, access: GatedProject, schema: SchemaManagerDep, audit: LogWriterDep
) -> SuccessResponse:
    async with audit.record(
        access.project_id, "/api/db/tables", "POST", "Table created", {"table": data.table_name}
    ):
        await schema.create_table(access.project_id, data.table_name)
    return SuccessResponse()


@router.delete("/tables/{table_name}", response_model=SuccessResponse, summary="Drop table")
async def drop_table(
    table_name: str, access: GatedProject, schema: SchemaManagerDep, audit: LogWriterDep
) -> SuccessResponse:
    async with audit.record(
        access.project_id, f"/api/db/tables/{table_name}", "DELETE", "Table dropped"
    ):
        await schema.drop_table(access.project_id, table_name)
    return SuccessResponse()


@router.post(
    "/tables/{table_name}/columns",
    response_model=SuccessResponse,
    summary="Add column",
    responses={
        400: {"description": "Invalid column name or unsupported type"},
        409: {"description": "Column already exists"},
    },
)
async def add_column(
    table_name: str,
    data: ColumnCreate,
    access: GatedProject,
    schema: SchemaManagerDep,
    audit: LogWriterDep,
) -> SuccessResponse:
    async with audit.record(
        access.project_id,
        f"/api/db/tables/{table_name}/columns",
        "POST",
        "Column added",
        {"column": data.name, "type": data.type},
    ):
        await schema.add_column(access.project_id, table_name, data.name, data.type)
    return SuccessResponse()


@router.get(
    "/tables/{table_name}/documents",
    response_model=DocumentsResponse,
    summary="List documents",
    description="Return at most 500 rows of the table.",
)
async def list_documents(
    table_name: str, access: GatedProject, store: DocumentStoreDep
) -> DocumentsResponse:
    return DocumentsResponse(documents=await store.list_documents(access.project_id, table_name))


@router.post("/tables/{table_name}/documents", summary="Insert document")
async def insert_document(
    table_name: str, data: DocumentCreate, access: GatedProject, store: DocumentStoreDep
) -> dict[str, Any]:
    return await store.insert_document(access.project_id, table_name, data.document)


@router.put(
    "/tables/auth_users/documents/{user_id}",
    summary="Update auth user",
    description="Update a row of ``auth_users``. ``id``, ``password_hash`` and ``created_at`` "
    "are ignored if present.",
    responses={404: {"description": "User not found"}},
)
async def update_auth_user(
    user_id: int, data: DocumentCreate, access: GatedProject, store: DocumentStoreDep
) -> dict[str, Any]:
    return await store.update_auth_user(access.project_id, user_id, data.document)


@router.get("/tables/{table_name}/indexes", response_model=IndexesResponse, summary="List indexes")
async def list_indexes(
    table_name: str, access: GatedProject, schema: SchemaManagerDep
) -> IndexesResponse:
    indexes = await schema.list_indexes(access.project_id, table_name)
    return IndexesResponse.model_validate({"indexes": indexes})


@router.post(
    "/tables/{table_name}/indexes",
    response_model=IndexCreated,
    summary="Create index",
    description="Build ``idx_<table>_<columns>`` concurrently. Repeating the call is a no-op.",
)
async def create_index(
    table_name: str,
    data: IndexCreate,
    access: GatedProject,
    schema: SchemaManagerDep,
    audit: LogWriterDep,
) -> IndexCreated:
    async with audit.record(
        access.project_id,
        f"/api/db/tables/{table_name}/indexes",
        "POST",
        "Index created",
        {"columns": data.columns, "method": data.method, "unique": data.unique},
    ):
        name = await schema.create_index(
            access.project_id, table_name, data.columns, data.method, data.unique
        )
    return IndexCreated(index_name=name)


@router.delete(
    "/tables/{table_name}/indexes/{index_name}",
    response_model=SuccessResponse,
    summary="Drop index",
    responses={400: {"description": "Primary key or non-generated index"}},
)
async def drop_index(
    table_name: str,
    index_name: str,
    access: GatedProject,
    schema: SchemaManagerDep,
    audit: LogWriterDep,
) -> SuccessResponse:
    async with audit.record(
        access.project_id,
        f"/api/db/tables/{table_name}/indexes/{index_name}",
        "DELETE",
        "Index dropped",
    ):
        await schema.drop_index(access.project_id, table_name, index_name)
    return SuccessResponse()


@router.get("/extensions", response_model=ExtensionsResponse, summary="List extensions")
async def list_extensions(access: GatedProject, schema: SchemaManagerDep) -> ExtensionsResponse:
    extensions = await schema.list_extensions(access.project_id)
    return ExtensionsResponse.model_validate({"extensions": extensions})


@router.post("/extensions/enable", response_model=SuccessResponse, summary="Enable extension")
async def enable_extension(
    data: ExtensionRequest, access: GatedProject, schema: SchemaManagerDep, audit: LogWriterDep
) -> SuccessResponse:
    async with audit.record(
        access.project_id,
        "/api/db/extensions/enable",
        "POST",
        "Extension enabled",
        {"extension": data.name},
    ):
        await schema.enable_extension(access.project_id, data.name)
    return SuccessResponse()


@router.post("/extensions/disable", response_model=SuccessResponse, summary="Disable extension")
async def disable_extension(
    data: ExtensionRequest, access: GatedProject, schema: SchemaManagerDep, audit: LogWriterDep
) -> SuccessResponse:
    async with audit.record(
        access.project_id,
        "/api/db/extensions/disable",
        "POST",
        "Extension disabled",
        {"extension": data.name},
    ):
        await schema.disable_extension(access.project_id, data.name)
    return SuccessResponse()
