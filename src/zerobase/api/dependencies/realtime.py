from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from src.zerobase.core.db import get_session
from src.zerobase.core.security import is_valid_project_id
from src.zerobase.models import Project
from src.zerobase.realtime import RealtimeNotifier
from src.zerobase.repositories import ProjectRepository

ProjectFinder = Callable[[str], Awaitable[Project | None]]


def get_realtime_notifier(connection: HTTPConnection) -> RealtimeNotifier:
    """The process-wide notifier created in the lifespan."""
    return connection.app.state.realtime  # type: ignore[no-any-return]


async def find_project(project_id: str) -> Project | None:
    """One-off lookup on its own session, so a long-lived socket holds no connection."""
    if not is_valid_project_id(project_id):
        return None
    async with get_session() as session:
        return await ProjectRepository(session).get_by_id(project_id)


def get_project_finder() -> ProjectFinder:
    return find_project


Realtime = Annotated[RealtimeNotifier, Depends(get_realtime_notifier)]
ProjectLookup = Annotated[ProjectFinder, Depends(get_project_finder)]
