"""In-memory stand-ins for the database seams, used by unit and HTTP tests.

Tenant databases are reached through a ``TenantConnector`` and the project
registry through ``ProjectRepository``; both are injected, so tests swap them
for these fakes instead of talking to PostgreSQL.
"""

import asyncio
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import DBAPIError

from src.zerobase.models import Project


class FakePgError(Exception):
    """Looks like an asyncpg/psycopg error: a message plus a SQLSTATE."""

    def __init__(self, message: str, sqlstate: str = "XX000"):
        super().__init__(message)
        self.sqlstate = sqlstate


def engine_error(message: str, sqlstate: str = "XX000") -> DBAPIError:
    return DBAPIError("statement", {}, FakePgError(message, sqlstate))


class FakeResult:
    """Enough of ``CursorResult`` for ``mappings()``, ``scalars()`` and ``scalar()``."""

    def __init__(self, rows: Iterable[dict[str, Any]] = ()):
        self._rows = [dict(row) for row in rows]

    def mappings(self) -> "FakeResult":
        return self

    def scalars(self) -> "FakeScalars":
        return FakeScalars([next(iter(row.values())) for row in self._rows if row])

    def all(self) -> list[dict[str, Any]]:
        return list(self._rows)

    def first(self) -> dict[str, Any] | None:
        return self._rows[0] if self._rows else None

    def one(self) -> dict[str, Any]:
        if len(self._rows) != 1:
            raise AssertionError(f"expected exactly one row, got {len(self._rows)}")
        return self._rows[0]

    def scalar(self) -> Any:
        if not self._rows:
            return None
        return next(iter(self._rows[0].values()))


class FakeScalars:
    def __init__(self, values: list[Any]):
        self._values = values

    def all(self) -> list[Any]:
        return list(self._values)


@dataclass
class Statement:
    database: str
    sql: str
    params: dict[str, Any]


@dataclass
class _Response:
    fragment: str
    rows: list[dict[str, Any]]
    error: Exception | None


class FakeConnection:
    def __init__(self, db: "FakeTenantDatabase", database: str):
        self._db = db
        self._database = database

    async def execute(self, statement: Any, params: dict[str, Any] | None = None) -> FakeResult:
        sql = " ".join(str(statement).split())
        self._db.statements.append(Statement(self._database, sql, dict(params or {})))
        for response in self._db.responses:
            if response.fragment in sql:
                if response.error is not None:
                    raise response.error
                return FakeResult(response.rows)
        return FakeResult()


@dataclass
class FakeTenantDatabase:
    """Records every statement and answers by SQL fragment, first match wins."""

    statements: list[Statement] = field(default_factory=list)
    responses: list[_Response] = field(default_factory=list)

    def respond(
        self,
        fragment: str,
        rows: Iterable[dict[str, Any]] = (),
        error: Exception | None = None,
    ) -> None:
        self.responses.append(_Response(fragment, [dict(r) for r in rows], error))

    @asynccontextmanager
    async def connector(self, project_id: str) -> AsyncGenerator[FakeConnection]:
        yield FakeConnection(self, project_id)

    @asynccontextmanager
    async def admin_connector(self) -> AsyncGenerator[FakeConnection]:
        yield FakeConnection(self, "main")

    def sql(self, database: str | None = None) -> list[str]:
        return [s.sql for s in self.statements if database is None or s.database == database]

    def executed(self, fragment: str) -> list[Statement]:
        return [s for s in self.statements if fragment in s.sql]


class FakeProjectRepository:
    """Dict-backed ``ProjectRepository``."""

    def __init__(self, projects: Iterable[Project] = ()):
        self.projects = {p.id: p for p in projects}

    async def get_by_id(self, id: str) -> Project | None:
        return self.projects.get(id)

    async def list_all(self) -> list[Project]:
        return sorted(self.projects.values(), key=lambda p: p.created_at, reverse=True)

    def add(self, entity: Project) -> None:
        self.projects[entity.id] = entity

    async def add_authorized_url(self, project_id: str, url: str) -> None:
        project = self.projects[project_id]
        if url not in project.authorized_urls:
            project.authorized_urls = [*project.authorized_urls, url]

    async def remove_authorized_url(self, project_id: str, url: str) -> None:
        project = self.projects[project_id]
        project.authorized_urls = [u for u in project.authorized_urls if u != url]


class FakeSession:
    """Main-database session: counts commits, optionally fails ``execute``."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.commits = 0
        self.added: list[Any] = []

    def add(self, entity: Any) -> None:
        self.added.append(entity)

    async def commit(self) -> None:
        self.commits += 1

    async def refresh(self, entity: Any) -> None:
        return None

    async def execute(self, statement: Any, params: dict[str, Any] | None = None) -> FakeResult:
        if self.error is not None:
            raise self.error
        return FakeResult([{"?column?": 1}])


class FakeSocket:
    """A realtime client connection that records what it was sent."""

    def __init__(self, fail_with: Exception | None = None):
        self.sent: list[Any] = []
        self.closed_with: int | None = None
        self._fail_with = fail_with

    async def send_json(self, data: Any, mode: str = "text") -> None:
        if self._fail_with is not None:
            raise self._fail_with
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = code


class StalledSocket(FakeSocket):
    """A client that never finishes receiving: every send blocks forever."""

    async def send_json(self, data: Any, mode: str = "text") -> None:
        await asyncio.Event().wait()
