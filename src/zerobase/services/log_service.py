"""Tenant audit log: the user-visible ``logs`` table inside each project database."""

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from src.zerobase.core.db import TenantConnector, tenant_connection
from src.zerobase.core.exceptions import (
    ZeroBaseError,
    engine_error_message,
    engine_error_status,
)
from src.zerobase.core.logging import get_logger

logger = get_logger(__name__)

_INSERT_LOG = text(
    "INSERT INTO logs (project_id, endpoint, method, status, message, metadata) "
    "VALUES (:project_id, :endpoint, :method, :status, :message, CAST(:metadata AS JSONB))"
)
_SELECT_LOGS = text(
    "SELECT * FROM logs ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset"
)


class TenantLogWriter:
    """Writes and reads rows of a project's ``logs`` table.

    ``write`` is best-effort: a failure is logged and never raised, so an audit
    row can not fail the operation it describes.
    """

    def __init__(self, connector: TenantConnector = tenant_connection):
        self._connector = connector

    async def write(
        self,
        project_id: str,
        endpoint: str,
        method: str,
        status: int,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        params = {
            "project_id": project_id,
            "endpoint": endpoint[:255],
            "method": method[:10],
            "status": status,
            "message": message,
            "metadata": json.dumps(jsonable_encoder(metadata or {})),
        }
        try:
            async with self._connector(project_id) as conn:
                await conn.execute(_INSERT_LOG, params)
        except (SQLAlchemyError, OSError) as e:
            logger.warning(
                "Tenant log write failed",
                project_id=project_id,
                endpoint=endpoint,
                error=str(e),
            )

    async def list_logs(self, project_id: str, limit: int = 10, offset: int = 0) -> list[dict]:
        """Newest first."""
        async with self._connector(project_id) as conn:
            result = await conn.execute(_SELECT_LOGS, {"limit": limit, "offset": offset})
            return [dict(row) for row in result.mappings().all()]

    @asynccontextmanager
    async def record(
        self,
        project_id: str,
        endpoint: str,
        method: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> AsyncGenerator[None]:
        """Log the wrapped mutation's outcome to the tenant ``logs`` table.

        Success is written as 200 with ``message``. A domain or engine error is
        written with its status and message, then re-raised unchanged.
        """
        try:
            yield
        except ZeroBaseError as e:
            await self.write(project_id, endpoint, method, e.status_code, e.message, metadata)
            raise
        except DBAPIError as e:
            await self.write(
                project_id,
                endpoint,
                method,
                engine_error_status(e),
                engine_error_message(e),
                metadata,
            )
            raise
        else:
            await self.write(project_id, endpoint, method, 200, message, metadata)
