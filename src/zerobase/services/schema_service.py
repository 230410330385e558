"""Schema manager - DDL against a project's own database.

Every tenant-supplied table, column, type, index method and extension name is
validated into ``Identifier``/``PgType``/``IndexMethod`` before it reaches SQL
text. Values never appear in DDL. Each statement runs on its own autocommit
connection; there is no multi-statement schema transaction.
"""

from dataclasses import dataclass, field

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from src.zerobase.core.db import TenantConnector, tenant_connection
from src.zerobase.core.exceptions import BadRequestError, engine_error_message
from src.zerobase.core.logging import get_logger
from src.zerobase.core.security.validators import (
    Identifier,
    index_name_for,
    validate_droppable_index,
    validate_extension,
    validate_identifier,
    validate_index_method,
    validate_type,
)
from src.zerobase.models import (
    LOGS_COLUMNS,
    LOGS_TABLE,
    SYSTEM_INDEXES,
    SYSTEM_TABLES,
)

logger = get_logger(__name__)

UPDATED_AT_COLUMN = "updated_at"

_LIST_TABLES = text(
    "SELECT table_name FROM information_schema.tables "
    "WHERE table_schema = 'public' AND table_type = 'BASE TABLE' "
    "ORDER BY table_name"
)
_LIST_COLUMNS = text(
    "SELECT table_name, column_name, data_type, udt_name, character_maximum_length, "
    "is_nullable, column_default "
    "FROM information_schema.columns WHERE table_schema = 'public' "
    "ORDER BY table_name, ordinal_position"
)
_TABLE_COLUMN_NAMES = text(
    "SELECT column_name FROM information_schema.columns "
    "WHERE table_schema = 'public' AND table_name = :table"
)
_LIST_INDEXES = text(
    """
    SELECT
        pi.indexname AS name,
        pi.indexdef AS definition,
        COALESCE(
            (SELECT json_agg(a.attname ORDER BY x.n)
             FROM pg_index i
             JOIN pg_class ci ON ci.oid = i.indexrelid
             JOIN pg_class ct ON ct.oid = i.indrelid
             JOIN LATERAL unnest(i.indkey) WITH ORDINALITY AS x(k, n) ON true
             JOIN pg_attribute a ON a.attrelid = ct.oid AND a.attnum = x.k
             WHERE ci.relname = pi.indexname),
            '[]'::json
        ) AS columns,
        COALESCE(
            (SELECT i.indisunique FROM pg_index i
             JOIN pg_class ci ON ci.oid = i.indexrelid
             WHERE ci.relname = pi.indexname),
            false
        ) AS is_unique
    FROM pg_indexes pi
    WHERE pi.schemaname = 'public'
      AND pi.tablename = :table
      AND pi.indexname NOT LIKE '%_pkey'
    ORDER BY pi.indexname
    """
)
_LIST_EXTENSIONS = text(
    """
    SELECT
        ae.name,
        ae.default_version,
        ae.installed_version,
        ae.comment,
        (e.extname IS NOT NULL) AS installed
    FROM pg_available_extensions ae
    LEFT JOIN pg_extension e ON e.extname = ae.name
    ORDER BY installed DESC, ae.name
    """
)
_UPDATED_AT_FUNCTION = text(
    """
    CREATE OR REPLACE FUNCTION update_updated_at_column()
    RETURNS TRIGGER AS $$
    BEGIN
        NEW.updated_at = NOW();
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """
)


@dataclass
class MigrationResult:
    """Outcome of an additive migration of one system table."""

    table: str
    added: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def build_create_table(table: Identifier) -> str:
    return f"CREATE TABLE {table.quoted} (id SERIAL PRIMARY KEY)"


def build_add_column(table: Identifier, column: Identifier, type_expr: str) -> str:
    return f"ALTER TABLE {table.quoted} ADD COLUMN {column.quoted} {validate_type(type_expr)}"


def build_create_index(
    table: Identifier,
    columns: list[Identifier],
    method: str,
    unique: bool,
) -> tuple[Identifier, str]:
    """Return the deterministic index name and its non-blocking CREATE statement."""
    index_method = validate_index_method(method)
    name = index_name_for(table, columns)
    column_list = ", ".join(c.quoted for c in columns)
    unique_clause = "UNIQUE " if unique else ""
    sql = (
        f"CREATE {unique_clause}INDEX CONCURRENTLY IF NOT EXISTS {name.quoted} "
        f"ON {table.quoted} USING {index_method.value} ({column_list})"
    )
    return name, sql


def build_ensure_table(table: Identifier, columns: dict[str, str]) -> str:
    """CREATE TABLE IF NOT EXISTS from a fixed column -> definition map."""
    definitions = ", ".join(
        f"{Identifier(column).quoted} {definition}" for column, definition in columns.items()
    )
    return f"CREATE TABLE IF NOT EXISTS {table.quoted} ({definitions})"


class SchemaManager:
    """Structure of one tenant database: tables, columns, indexes, extensions."""

    def __init__(self, connector: TenantConnector = tenant_connection):
        self._connector = connector

    async def _execute(self, project_id: str, sql: str) -> None:
        async with self._connector(project_id) as conn:
            await conn.execute(text(sql))

    # Tables

    async def list_tables(self, project_id: str) -> list[dict]:
        """Public-schema tables with their column metadata, in ordinal order."""
        async with self._connector(project_id) as conn:
            tables = (await conn.execute(_LIST_TABLES)).scalars().all()
            columns = (await conn.execute(_LIST_COLUMNS)).mappings().all()

        by_table: dict[str, list[dict]] = {name: [] for name in tables}
        for row in columns:
            row = dict(row)
            table = row.pop("table_name")
            if table in by_table:
                by_table[table].append(row)
        return [{"name": name, "columns": cols} for name, cols in by_table.items()]

    async def create_table(self, project_id: str, table_name: str) -> Identifier:
        table = validate_identifier(table_name)
        await self._execute(project_id, build_create_table(table))
        logger.info("Table created", project_id=project_id, table=table)
        return table

    async def drop_table(self, project_id: str, table_name: str) -> Identifier:
        """Drop with CASCADE: dependent indexes and constraints go with it."""
        table = validate_identifier(table_name)
        await self._execute(project_id, f"DROP TABLE IF EXISTS {table.quoted} CASCADE")
        logger.info("Table dropped", project_id=project_id, table=table)
        return table

    async def add_column(
        self, project_id: str, table_name: str, column_name: str, type_expr: str
    ) -> None:
        table = validate_identifier(table_name)
        column = validate_identifier(column_name)
        sql = build_add_column(table, column, type_expr)
        await self._execute(project_id, sql)
        logger.info("Column added", project_id=project_id, table=table, column=column)

    # Indexes

    async def list_indexes(self, project_id: str, table_name: str) -> list[dict]:
        table = validate_identifier(table_name)
        async with self._connector(project_id) as conn:
            result = await conn.execute(_LIST_INDEXES, {"table": str(table)})
            rows = [dict(row) for row in result.mappings().all()]
        for row in rows:
            if not isinstance(row.get("columns"), list):
                row["columns"] = []
        return rows

    async def create_index(
        self,
        project_id: str,
        table_name: str,
        columns: list[str],
        method: str = "btree",
        unique: bool = False,
    ) -> Identifier:
        """Build an index without locking writes. Idempotent by name.

        Returns:
            The deterministic index name ``idx_<table>_<col1>_<col2>...``.
        """
        table = validate_identifier(table_name)
        if not columns:
            raise BadRequestError("At least one column is required.")
        validated = [validate_identifier(c) for c in columns]
        name, sql = build_create_index(table, validated, method, unique)
        await self._execute(project_id, sql)
        logger.info("Index created", project_id=project_id, table=table, index=name)
        return name

    async def drop_index(self, project_id: str, table_name: str, index_name: str) -> None:
        validate_identifier(table_name)
        index = validate_droppable_index(index_name)
        await self._execute(project_id, f"DROP INDEX CONCURRENTLY IF EXISTS {index.quoted}")
        logger.info("Index dropped", project_id=project_id, index=index)

    # Extensions

    async def list_extensions(self, project_id: str) -> list[dict]:
        async with self._connector(project_id) as conn:
            result = await conn.execute(_LIST_EXTENSIONS)
            return [dict(row) for row in result.mappings().all()]

    async def enable_extension(self, project_id: str, name: str) -> None:
        extension = validate_extension(name)
        await self._execute(project_id, f'CREATE EXTENSION IF NOT EXISTS "{extension}"')
        logger.info("Extension enabled", project_id=project_id, extension=extension)

    async def disable_extension(self, project_id: str, name: str) -> None:
        extension = validate_extension(name)
        await self._execute(project_id, f'DROP EXTENSION IF EXISTS "{extension}" CASCADE')
        logger.info("Extension disabled", project_id=project_id, extension=extension)

    # System tables

    async def bootstrap_logs(self, project_id: str) -> None:
        """Create the ``logs`` table in a freshly provisioned database."""
        await self._execute(project_id, build_ensure_table(Identifier(LOGS_TABLE), LOGS_COLUMNS))

    async def init_system_tables(self, project_id: str) -> list[MigrationResult]:
        """Ensure ``auth_users`` and ``logs`` exist and carry every current column."""
        results = []
        for table_name, columns in SYSTEM_TABLES.items():
            table = Identifier(table_name)
            await self._execute(project_id, build_ensure_table(table, columns))
            results.append(await self.migrate_table(project_id, table, columns))
        return results

    async def migrate_table(
        self, project_id: str, table: Identifier, columns: dict[str, str]
    ) -> MigrationResult:
        """Forward-only: add missing columns, never drop or alter existing ones.

        A failing column is recorded and the rest still run, so a partial
        migration leaves the already-added columns in place.
        """
        result = MigrationResult(table=str(table))
        async with self._connector(project_id) as conn:
            existing = set(
                (await conn.execute(_TABLE_COLUMN_NAMES, {"table": str(table)})).scalars().all()
            )
            for column_name, definition in columns.items():
                if column_name in existing:
                    continue
                column = Identifier(column_name)
                try:
                    await conn.execute(
                        text(
                            f"ALTER TABLE {table.quoted} "
                            f"ADD COLUMN IF NOT EXISTS {column.quoted} {definition}"
                        )
                    )
                except DBAPIError as e:
                    result.failed[column_name] = engine_error_message(e)
                    logger.warning(
                        "Column migration failed",
                        project_id=project_id,
                        table=table,
                        column=column_name,
                        error=result.failed[column_name],
                    )
                else:
                    result.added.append(column_name)

            for index_name, column_name in SYSTEM_INDEXES.get(str(table), []):
                await conn.execute(
                    text(
                        f"CREATE INDEX IF NOT EXISTS {Identifier(index_name).quoted} "
                        f"ON {table.quoted} ({Identifier(column_name).quoted})"
                    )
                )

            if UPDATED_AT_COLUMN in columns:
                trigger = Identifier(f"update_{table}_updated_at")
                await conn.execute(_UPDATED_AT_FUNCTION)
                await conn.execute(
                    text(f"DROP TRIGGER IF EXISTS {trigger.quoted} ON {table.quoted}")
                )
                await conn.execute(
                    text(
                        f"CREATE TRIGGER {trigger.quoted} BEFORE UPDATE ON {table.quoted} "
                        "FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()"
                    )
                )

        if result.added:
            logger.info(
                "System table migrated",
                project_id=project_id,
                table=table,
                added=result.added,
            )
        return result
