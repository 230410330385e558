"""Repository for the Project registry."""

from sqlalchemy import Text, func, literal, update

from src.zerobase.models import Project
from src.zerobase.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for Project rows in the main database."""

    model = Project
    newest_first = Project.created_at

    async def add_authorized_url(self, project_id: str, url: str) -> None:
        """Append an origin unless it is already present, in one statement."""
        value = literal(url, Text)
        await self.session.execute(
            update(Project)
            .where(
                Project.id == project_id,
                ~Project.authorized_urls.any(url),  # type: ignore[attr-defined]
            )
            .values(authorized_urls=func.array_append(Project.authorized_urls, value))
            .execution_options(synchronize_session=False)
        )

    async def remove_authorized_url(self, project_id: str, url: str) -> None:
        value = literal(url, Text)
        await self.session.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(authorized_urls=func.array_remove(Project.authorized_urls, value))
            .execution_options(synchronize_session=False)
        )
