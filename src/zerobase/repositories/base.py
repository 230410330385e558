"""Shared data access for tables in the main database."""

from typing import Any, ClassVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select


class BaseRepository[ModelType: SQLModel]:
    """Reads and staged writes for one registry table, keyed by a string id.

    Nothing here commits; the calling service owns the transaction.
    """

    model: type[ModelType]
    # Column that orders ``list_all`` newest first
    newest_first: ClassVar[Any] = None

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: str) -> ModelType | None:
        return await self.session.get(self.model, id)

    async def list_all(self) -> list[ModelType]:
        query = select(self.model)
        if self.newest_first is not None:
            query = query.order_by(self.newest_first.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    def add(self, entity: ModelType) -> None:
        self.session.add(entity)
