"""Document store - row-level reads and writes on tenant tables.

Table names and document keys are interpolated as validated, quoted
identifiers. Document values never are: the whole document is bound as one
JSON parameter and expanded server-side with ``json_populate_record``, so the
engine coerces each value to its column's type.
"""

import json
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy import text

from src.zerobase.core.db import TenantConnector, tenant_connection
from src.zerobase.core.exceptions import NotFoundError
from src.zerobase.core.logging import get_logger
from src.zerobase.core.security.validators import Identifier, validate_identifier
from src.zerobase.models import AUTH_USERS_TABLE, PROTECTED_USER_FIELDS, SECRET_USER_FIELDS
from src.zerobase.realtime import RealtimeNotifier
from src.zerobase.services.log_service import TenantLogWriter

logger = get_logger(__name__)

DOCUMENT_LIMIT = 500

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"


def public_row(table: str, row: dict[str, Any]) -> dict[str, Any]:
    """A row as it leaves the service: JSON types only, no credential columns.

    NUMERIC values become JSON numbers and timestamps ISO strings, so a row
    read back from a list matches the one its change event carried.
    """
    if table == AUTH_USERS_TABLE:
        row = {k: v for k, v in row.items() if k not in SECRET_USER_FIELDS}
    return jsonable_encoder(row)


def build_insert(table: Identifier, columns: list[Identifier]) -> str:
    if not columns:
        return f"INSERT INTO {table.quoted} DEFAULT VALUES RETURNING *"
    column_list = ", ".join(c.quoted for c in columns)
    return (
        f"INSERT INTO {table.quoted} ({column_list}) "
        f"SELECT {column_list} FROM json_populate_record(CAST(NULL AS {table.quoted}), "
        "CAST(:document AS JSON)) RETURNING *"
    )


def build_update_by_id(table: Identifier, columns: list[Identifier]) -> str:
    assignments = ", ".join(f"{c.quoted} = r.{c.quoted}" for c in columns)
    return (
        f"UPDATE {table.quoted} SET {assignments} "
        f"FROM json_populate_record(CAST(NULL AS {table.quoted}), CAST(:document AS JSON)) AS r "
        f"WHERE {table.quoted}.id = :id RETURNING {table.quoted}.*"
    )


def _document_param(document: dict[str, Any]) -> str:
    return json.dumps(jsonable_encoder(document))


class DocumentStore:
    """CRUD on rows of dynamically named tenant tables.

    Mutations are recorded in the tenant ``logs`` table and broadcast to realtime
    subscribers of the table. Neither side effect can fail the mutation.
    """

    def __init__(
        self,
        connector: TenantConnector = tenant_connection,
        notifier: RealtimeNotifier | None = None,
        log_writer: TenantLogWriter | None = None,
    ):
        self._connector = connector
        self._notifier = notifier
        self._log_writer = log_writer or TenantLogWriter(connector)

    async def list_documents(
        self, project_id: str, table_name: str, limit: int = DOCUMENT_LIMIT
    ) -> list[dict[str, Any]]:
        """First ``limit`` rows of a table, capped at 500. No further paging."""
        table = validate_identifier(table_name)
        limit = max(1, min(limit, DOCUMENT_LIMIT))
        async with self._connector(project_id) as conn:
            result = await conn.execute(
                text(f"SELECT * FROM {table.quoted} LIMIT :limit"), {"limit": limit}
            )
            rows = result.mappings().all()
        return [public_row(table, dict(row)) for row in rows]

    async def insert_document(
        self, project_id: str, table_name: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        """Insert one row built from the document's keys. Returns the stored row."""
        endpoint = f"/api/db/tables/{table_name}/documents"
        async with self._log_writer.record(
            project_id, endpoint, "POST", "Document created", {"table": table_name}
        ):
            table = validate_identifier(table_name)
            columns = [validate_identifier(key) for key in document]
            async with self._connector(project_id) as conn:
                result = await conn.execute(
                    text(build_insert(table, columns)), {"document": _document_param(document)}
                )
                row = public_row(table, dict(result.mappings().one()))

        logger.info("Document inserted", project_id=project_id, table=table)
        await self._broadcast(project_id, table, EVENT_INSERT, row)
        return row

    async def update_auth_user(
        self, project_id: str, user_id: int, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Update an ``auth_users`` row. ``id``, ``password_hash`` and ``created_at``
        are silently dropped from ``fields``.

        Raises:
            NotFoundError: No user with ``user_id``.
        """
        endpoint = f"/api/db/tables/{AUTH_USERS_TABLE}/documents/{user_id}"
        async with self._log_writer.record(
            project_id, endpoint, "PUT", "User updated", {"user_id": user_id}
        ):
            table = Identifier(AUTH_USERS_TABLE)
            writable = {k: v for k, v in fields.items() if k not in PROTECTED_USER_FIELDS}
            columns = [validate_identifier(key) for key in writable]
            async with self._connector(project_id) as conn:
                if columns:
                    result = await conn.execute(
                        text(build_update_by_id(table, columns)),
                        {"document": _document_param(writable), "id": user_id},
                    )
                else:
                    result = await conn.execute(
                        text(f"SELECT * FROM {table.quoted} WHERE id = :id"), {"id": user_id}
                    )
                found = result.mappings().first()
            if found is None:
                raise NotFoundError("User not found")
            row = public_row(table, dict(found))

        if columns:
            await self._broadcast(project_id, table, EVENT_UPDATE, row)
        return row

    async def _broadcast(self, project_id: str, table: str, event: str, row: dict) -> None:
        if self._notifier is None:
            return
        await self._notifier.broadcast(project_id, table, event, row)
