"""Project provisioning and management in the main database."""

import secrets
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from src.zerobase.core.config import get_settings
from src.zerobase.core.db import admin_connection
from src.zerobase.core.exceptions import BadRequestError, NotFoundError
from src.zerobase.core.logging import get_logger
from src.zerobase.core.security import (
    generate_api_key,
    is_valid_project_id,
    normalize_origin,
    validate_origin_url,
    validate_project_id,
    verify_api_key,
)
from src.zerobase.models import Project
from src.zerobase.models.base import epoch_ms
from src.zerobase.repositories import ProjectRepository
from src.zerobase.schemas.project import ProjectCreated
from src.zerobase.services.schema_service import SchemaManager
from src.zerobase.services.storage_service import StorageQuotaManager

logger = get_logger(__name__)

AdminConnector = Callable[[], AbstractAsyncContextManager[AsyncConnection]]


def generate_project_id() -> str:
    """``project_<epoch-ms>_<6 hex>``: sortable by creation, safe as a database name."""
    return f"project_{epoch_ms()}_{secrets.token_hex(3)}"


class ProjectService:
    """Project registry operations - business logic only."""

    def __init__(
        self,
        project_repo: ProjectRepository,
        session: AsyncSession,
        schema: SchemaManager,
        storage: StorageQuotaManager,
        admin: AdminConnector = admin_connection,
    ):
        self.project_repo = project_repo
        self.session = session
        self.schema = schema
        self.storage = storage
        self._admin = admin

    async def provision(self, name: str, storage_mb: int | None = None) -> ProjectCreated:
        """Create a project and its physical database.

        Steps:
        1. Generate the id and API key (only the argon2 hash is kept)
        2. CREATE DATABASE named after the id
        3. Create the ``logs`` table inside it
        4. Record the project in the main database
        5. Create the project's storage directory

        Returns:
            The new project with its raw API key, shown this one time only.
        """
        project_id = validate_project_id(generate_project_id())
        api_key, api_key_hash = generate_api_key()

        async with self._admin() as conn:
            await conn.execute(text(f'CREATE DATABASE "{project_id}"'))
        await self.schema.bootstrap_logs(project_id)

        project = Project(
            id=project_id,
            name=name,
            api_key_hash=api_key_hash,
            storage_quota_mb=storage_mb or get_settings().default_storage_quota_mb,
        )
        self.project_repo.add(project)
        await self.session.commit()
        await self.session.refresh(project)

        self.storage.create_project_directory(project_id)
        logger.info("Project provisioned", project_id=project_id, name=name)
        return ProjectCreated(project_id=project_id, name=name, api_key=api_key)

    async def find(self, project_id: str | None) -> Project | None:
        """Look up a project. Malformed ids are treated as unknown without a query."""
        if not project_id or not is_valid_project_id(project_id):
            return None
        return await self.project_repo.get_by_id(project_id)

    async def get_project(self, project_id: str | None) -> Project:
        project = await self.find(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def list_projects(self) -> list[Project]:
        return await self.project_repo.list_all()

    async def verify_key(self, project_id: str, api_key: str) -> bool:
        project = await self.get_project(project_id)
        return verify_api_key(api_key, project.api_key_hash)

    async def list_urls(self, project_id: str) -> list[str]:
        project = await self.get_project(project_id)
        return list(project.authorized_urls or [])

    async def add_url(self, project_id: str, url: str) -> list[str]:
        """Authorize an origin. Adding one that is already present is a no-op."""
        origin = validate_origin_url(url)
        project = await self.get_project(project_id)
        existing = {normalize_origin(u) for u in project.authorized_urls or []}
        if normalize_origin(origin) not in existing:
            await self.project_repo.add_authorized_url(project_id, origin)
            await self.session.commit()
            await self.session.refresh(project)
            logger.info("Authorized origin added", project_id=project_id, origin=origin)
        return list(project.authorized_urls or [])

    async def remove_url(self, project_id: str, url: str) -> list[str]:
        if not url:
            raise BadRequestError("url is required")
        project = await self.get_project(project_id)
        target = normalize_origin(url)
        matches = [u for u in project.authorized_urls or [] if normalize_origin(u) == target]
        if matches:
            for stored in matches:
                await self.project_repo.remove_authorized_url(project_id, stored)
            await self.session.commit()
            await self.session.refresh(project)
            logger.info("Authorized origin removed", project_id=project_id, origin=url)
        return list(project.authorized_urls or [])

    async def regenerate_key(self, project_id: str) -> str:
        """Replace the project's API key. The old key stops working immediately."""
        project = await self.get_project(project_id)
        api_key, api_key_hash = generate_api_key()
        project.api_key_hash = api_key_hash
        self.session.add(project)
        await self.session.commit()
        logger.info("API key regenerated", project_id=project_id)
        return api_key
