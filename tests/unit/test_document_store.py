"""Tests for row reads and writes on tenant tables."""

import json
import time

import pytest

from src.zerobase.core.exceptions import InvalidIdentifierError, NotFoundError
from src.zerobase.realtime import RealtimeNotifier
from src.zerobase.services import DocumentStore
from tests.helpers import FakeSocket, FakeTenantDatabase, StalledSocket

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

PROJECT_ID = "project_1718000000000_a1b2c3"


@pytest.fixture
def tenant_db() -> FakeTenantDatabase:
    return FakeTenantDatabase()


@pytest.fixture
async def notifier():
    notifier = RealtimeNotifier(send_timeout=1.0)
    yield notifier
    await notifier.close()


@pytest.fixture
def store(tenant_db, notifier) -> DocumentStore:
    return DocumentStore(tenant_db.connector, notifier)


async def subscribed_socket(notifier: RealtimeNotifier, table: str) -> FakeSocket:
    socket = FakeSocket()
    subscriber = await notifier.register(PROJECT_ID, socket)
    await notifier.subscribe(subscriber, table)
    return socket


class TestInsert:
    async def test_values_are_bound_as_one_json_parameter(self, store, tenant_db):
        tenant_db.respond('INSERT INTO "todos"', [{"id": 1, "title": "x'); DROP TABLE t;--"}])

        row = await store.insert_document(PROJECT_ID, "todos", {"title": "x'); DROP TABLE t;--"})

        assert row == {"id": 1, "title": "x'); DROP TABLE t;--"}
        (insert,) = tenant_db.executed('INSERT INTO "todos"')
        assert insert.sql == (
            'INSERT INTO "todos" ("title") SELECT "title" FROM '
            'json_populate_record(CAST(NULL AS "todos"), CAST(:document AS JSON)) RETURNING *'
        )
        assert json.loads(insert.params["document"]) == {"title": "x'); DROP TABLE t;--"}

    async def test_empty_document_uses_defaults(self, store, tenant_db):
        tenant_db.respond('INSERT INTO "todos"', [{"id": 7}])
        await store.insert_document(PROJECT_ID, "todos", {})
        assert tenant_db.sql()[0] == 'INSERT INTO "todos" DEFAULT VALUES RETURNING *'

    async def test_invalid_key_rejected_before_sql(self, store, tenant_db):
        with pytest.raises(InvalidIdentifierError):
            await store.insert_document(PROJECT_ID, "todos", {"title; DROP": 1})
        assert not tenant_db.executed('INSERT INTO "todos"')

    async def test_insert_is_audited(self, store, tenant_db):
        tenant_db.respond('INSERT INTO "todos"', [{"id": 1}])
        await store.insert_document(PROJECT_ID, "todos", {})

        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["status"] == 200
        assert log.params["endpoint"] == "/api/db/tables/todos/documents"

    async def test_insert_broadcasts_exactly_one_change(self, store, tenant_db, notifier):
        tenant_db.respond('INSERT INTO "todos"', [{"id": 1, "title": "a"}])
        todos = await subscribed_socket(notifier, "todos")
        other = await subscribed_socket(notifier, "notes")

        await store.insert_document(PROJECT_ID, "todos", {"title": "a"})
        await notifier.drain()

        assert len(todos.sent) == 1
        message = todos.sent[0]
        assert message["type"] == "change"
        assert message["event"] == "INSERT"
        assert message["table"] == "todos"
        assert message["data"] == {"id": 1, "title": "a"}
        assert isinstance(message["ts"], int)
        assert other.sent == []

    async def test_stalled_subscriber_does_not_hold_the_insert(self, tenant_db):
        notifier = RealtimeNotifier(send_timeout=1.0)
        store = DocumentStore(tenant_db.connector, notifier)
        tenant_db.respond('INSERT INTO "products"', [{"id": 1, "price": 1}])
        subscriber = await notifier.register(PROJECT_ID, StalledSocket())
        await notifier.subscribe(subscriber, "products")

        started = time.monotonic()
        row = await store.insert_document(PROJECT_ID, "products", {"price": 1})
        elapsed = time.monotonic() - started

        assert row == {"id": 1, "price": 1}
        assert elapsed < 0.5
        await notifier.close()

    async def test_store_without_notifier_still_writes(self, tenant_db):
        tenant_db.respond('INSERT INTO "todos"', [{"id": 1}])
        store = DocumentStore(tenant_db.connector)
        assert await store.insert_document(PROJECT_ID, "todos", {}) == {"id": 1}


class TestList:
    async def test_list_is_capped(self, store, tenant_db):
        tenant_db.respond('SELECT * FROM "todos"', [{"id": 1}, {"id": 2}])

        rows = await store.list_documents(PROJECT_ID, "todos", limit=10_000)

        assert rows == [{"id": 1}, {"id": 2}]
        assert tenant_db.statements[0].params == {"limit": 500}

    async def test_auth_users_secrets_never_listed(self, store, tenant_db):
        tenant_db.respond(
            'SELECT * FROM "auth_users"',
            [{"id": 1, "email": "a@example.com", "password_hash": "h", "otp_secret": "s"}],
        )

        rows = await store.list_documents(PROJECT_ID, "auth_users")

        assert rows == [{"id": 1, "email": "a@example.com"}]


class TestUpdateAuthUser:
    async def test_protected_fields_are_stripped(self, store, tenant_db, notifier):
        tenant_db.respond('UPDATE "auth_users"', [{"id": 3, "name": "New", "password_hash": "h"}])
        socket = await subscribed_socket(notifier, "auth_users")

        row = await store.update_auth_user(
            PROJECT_ID,
            3,
            {"name": "New", "id": 99, "password_hash": "hacked", "created_at": "2000-01-01"},
        )

        assert row == {"id": 3, "name": "New"}
        await notifier.drain()
        (update,) = tenant_db.executed('UPDATE "auth_users"')
        assert update.sql == (
            'UPDATE "auth_users" SET "name" = r."name" '
            'FROM json_populate_record(CAST(NULL AS "auth_users"), CAST(:document AS JSON)) AS r '
            'WHERE "auth_users".id = :id RETURNING "auth_users".*'
        )
        assert json.loads(update.params["document"]) == {"name": "New"}
        assert update.params["id"] == 3
        assert [m["event"] for m in socket.sent] == ["UPDATE"]

    async def test_only_protected_fields_is_a_read(self, store, tenant_db, notifier):
        tenant_db.respond('SELECT * FROM "auth_users" WHERE id', [{"id": 3, "name": "Old"}])
        socket = await subscribed_socket(notifier, "auth_users")

        row = await store.update_auth_user(PROJECT_ID, 3, {"password_hash": "hacked"})

        assert row == {"id": 3, "name": "Old"}
        assert not tenant_db.executed('UPDATE "auth_users"')
        await notifier.drain()
        assert socket.sent == []

    async def test_unknown_user(self, store, tenant_db):
        with pytest.raises(NotFoundError, match="User not found"):
            await store.update_auth_user(PROJECT_ID, 404, {"name": "x"})

        (log,) = tenant_db.executed("INSERT INTO logs")
        assert log.params["status"] == 404
