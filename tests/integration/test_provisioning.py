"""Project provisioning and tenant isolation against PostgreSQL."""

import pytest
from httpx import AsyncClient

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

PAYLOAD = "x'); DROP TABLE todos;--"


async def test_tables_and_documents_live_in_the_project_database(
    client: AsyncClient, create_project
) -> None:
    project_id = (await create_project())["projectId"]

    created = await client.post(
        "/api/db/tables", json={"projectId": project_id, "tableName": "todos"}
    )
    assert created.status_code == 200, created.text
    column = await client.post(
        "/api/db/tables/todos/columns",
        json={"projectId": project_id, "name": "title", "type": "varchar(200)"},
    )
    assert column.status_code == 200, column.text

    inserted = await client.post(
        "/api/db/tables/todos/documents",
        json={"projectId": project_id, "document": {"title": PAYLOAD}},
    )
    assert inserted.status_code == 200, inserted.text
    assert inserted.json()["title"] == PAYLOAD

    listed = await client.get("/api/db/tables/todos/documents", params={"projectId": project_id})
    assert [d["title"] for d in listed.json()["documents"]] == [PAYLOAD]

    tables = await client.get("/api/db/tables", params={"projectId": project_id})
    (todos,) = [t for t in tables.json()["tables"] if t["name"] == "todos"]
    assert [c["columnName"] for c in todos["columns"]] == ["id", "title"]


async def test_numeric_price_round_trip(client: AsyncClient, create_project) -> None:
    project_id = (await create_project("Shop"))["projectId"]
    params = {"projectId": project_id}

    table = await client.post("/api/db/tables", json={**params, "tableName": "products"})
    assert table.status_code == 200, table.text
    column = await client.post(
        "/api/db/tables/products/columns",
        json={**params, "name": "price", "type": "NUMERIC(10,2)"},
    )
    assert column.status_code == 200, column.text

    inserted = await client.post(
        "/api/db/tables/products/documents", json={**params, "document": {"price": 9.99}}
    )
    assert inserted.status_code == 200, inserted.text
    assert inserted.json() == {"id": 1, "price": 9.99}

    listed = await client.get("/api/db/tables/products/documents", params=params)
    assert listed.json() == {"documents": [{"id": 1, "price": 9.99}]}


async def test_duplicate_table_is_a_conflict_and_audited(
    client: AsyncClient, create_project
) -> None:
    project_id = (await create_project())["projectId"]
    body = {"projectId": project_id, "tableName": "todos"}

    assert (await client.post("/api/db/tables", json=body)).status_code == 200
    duplicate = await client.post("/api/db/tables", json=body)

    assert duplicate.status_code == 409
    assert "already exists" in duplicate.json()["error"]

    logs = await client.get("/api/logs", params={"projectId": project_id})
    assert [row["status"] for row in logs.json()] == [409, 200]


async def test_projects_do_not_see_each_other(client: AsyncClient, create_project) -> None:
    first = (await create_project("First"))["projectId"]
    second = (await create_project("Second"))["projectId"]

    await client.post("/api/db/tables", json={"projectId": first, "tableName": "secrets"})

    tables = await client.get("/api/db/tables", params={"projectId": second})
    assert "secrets" not in [t["name"] for t in tables.json()["tables"]]


async def test_index_creation_is_idempotent(client: AsyncClient, create_project) -> None:
    project_id = (await create_project())["projectId"]
    await client.post("/api/db/tables", json={"projectId": project_id, "tableName": "users"})
    await client.post(
        "/api/db/tables/users/columns",
        json={"projectId": project_id, "name": "email", "type": "text"},
    )

    body = {"projectId": project_id, "columns": ["email"]}
    first = await client.post("/api/db/tables/users/indexes", json=body)
    second = await client.post("/api/db/tables/users/indexes", json=body)

    assert first.json()["indexName"] == second.json()["indexName"] == "idx_users_email"
    indexes = await client.get("/api/db/tables/users/indexes", params={"projectId": project_id})
    assert [i["name"] for i in indexes.json()["indexes"]] == ["idx_users_email"]


async def test_auth_flow(client: AsyncClient, create_project) -> None:
    project_id = (await create_project())["projectId"]
    assert (await client.post("/api/auth/init", json={"projectId": project_id})).status_code == 200
    # Running it again only checks for missing columns
    assert (await client.post("/api/auth/init", json={"projectId": project_id})).status_code == 200

    credentials = {"projectId": project_id, "email": "ada@example.com", "password": "s3cret!"}
    signup = await client.post("/api/auth/signup", json={**credentials, "name": "Ada"})
    assert signup.status_code == 200, signup.text
    assert "password_hash" not in signup.json()["user"]

    wrong = await client.post("/api/auth/login", json={**credentials, "password": "nope"})
    assert wrong.status_code == 401

    login = await client.post("/api/auth/login", json=credentials)
    assert login.status_code == 200
    assert login.json()["user"]["login_count"] == 1
    assert login.json()["user"]["failed_attempts"] == 1

    me = await client.get(
        "/api/auth/me",
        params={"projectId": project_id},
        headers={"Authorization": f"Bearer {login.json()['token']}"},
    )
    assert me.status_code == 200
    assert me.json()["email"] == "ada@example.com"
