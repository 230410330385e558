"""Validators for tenant-supplied names that end up inside SQL text.

Table names, column names, column types, index methods and extension names are
interpolated into DDL/DML because PostgreSQL cannot bind identifiers as
parameters. Every such value must pass through this module first. The
``Identifier`` and ``PgType`` string types can only be constructed through
successful validation, and the SQL builders refuse anything else.
"""

import re
from datetime import timedelta
from enum import StrEnum
from typing import Final
from urllib.parse import urlsplit

from src.zerobase.core.exceptions import (
    BadRequestError,
    InvalidIdentifierError,
    UnsupportedTypeError,
)

MAX_IDENTIFIER_LENGTH: Final[int] = 63  # PostgreSQL NAMEDATALEN - 1
IDENTIFIER_REGEX: Final[str] = r"^[A-Za-z_][A-Za-z0-9_]*$"
PROJECT_ID_REGEX: Final[str] = r"^[a-z][a-z0-9_]{0,62}$"
INDEX_PREFIX: Final[str] = "idx_"
PKEY_SUFFIX: Final[str] = "_pkey"

_IDENTIFIER_PATTERN: Final[re.Pattern[str]] = re.compile(IDENTIFIER_REGEX)
_PROJECT_ID_PATTERN: Final[re.Pattern[str]] = re.compile(PROJECT_ID_REGEX)
_TYPE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<base>[A-Z][A-Z0-9]*(?: PRECISION)?)\s*(?:\(\s*(?P<args>\d+(?:\s*,\s*\d+)?)\s*\))?$"
)
_EXPIRY_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(\d+)([smhdw])$")
_UNSAFE_FILENAME_CHARS: Final[re.Pattern[str]] = re.compile(r"[^a-zA-Z0-9._-]")
_ORIGIN_MESSAGE: Final[str] = (
    "url must be a valid http/https origin with no path (e.g. https://myapp.com)"
)

RESERVED_DATABASE_NAMES: Final[frozenset[str]] = frozenset({"postgres", "template0", "template1"})

VALID_PG_TYPES: Final[frozenset[str]] = frozenset(
    {
        # text
        "TEXT", "VARCHAR", "CHAR", "BPCHAR",
        # integer
        "INTEGER", "INT", "INT2", "INT4", "INT8", "BIGINT", "SMALLINT",
        "SERIAL", "BIGSERIAL", "SMALLSERIAL",
        # floating / numeric
        "NUMERIC", "DECIMAL", "REAL", "FLOAT4", "FLOAT8", "DOUBLE PRECISION",
        # boolean
        "BOOLEAN", "BOOL",
        # date / time
        "DATE", "TIME", "TIMETZ", "TIMESTAMP", "TIMESTAMPTZ", "INTERVAL",
        # misc
        "UUID", "JSON", "JSONB", "BYTEA",
        # network
        "CIDR", "INET", "MACADDR",
    }
)  # fmt: skip

# Curated list: excludes superuser-only and filesystem/network access extensions.
SAFE_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {
        "uuid-ossp", "pgcrypto", "hstore", "pg_trgm", "fuzzystrmatch",
        "citext", "ltree", "intarray", "tablefunc", "unaccent",
        "pg_stat_statements", "pgrowlocks", "pgstattuple",
        "postgis", "postgis_topology", "postgis_tiger_geocoder",
        "vector", "bloom", "btree_gin", "btree_gist",
        "dict_int", "dict_xsyn", "earthdistance", "cube",
        "isn", "lo", "seg", "xml2",
    }
)  # fmt: skip


class IndexMethod(StrEnum):
    BTREE = "btree"
    HASH = "hash"
    GIN = "gin"
    GIST = "gist"
    BRIN = "brin"
    SPGIST = "spgist"


class Identifier(str):
    """A table or column name that matched ``IDENTIFIER_REGEX``.

    Constructing one validates the value, so holding an ``Identifier`` is proof
    that it is safe to splice into SQL as a quoted identifier.
    """

    __slots__ = ()

    def __new__(cls, value: str) -> "Identifier":
        if not isinstance(value, str) or not _IDENTIFIER_PATTERN.fullmatch(value):
            raise InvalidIdentifierError(
                f"Invalid identifier {value!r}. Use letters, numbers, and underscores only, "
                "starting with a letter or underscore."
            )
        if len(value) > MAX_IDENTIFIER_LENGTH:
            raise InvalidIdentifierError(
                f"Identifier exceeds PostgreSQL limit: {len(value)} > {MAX_IDENTIFIER_LENGTH}"
            )
        return super().__new__(cls, value)

    @property
    def quoted(self) -> str:
        return f'"{self}"'


class PgType(str):
    """A normalized column type expression from ``VALID_PG_TYPES``.

    The base keyword is upper-cased and an optional ``(n)`` or ``(p,s)``
    modifier is kept in canonical form, e.g. ``numeric( 10 , 2 )`` becomes
    ``NUMERIC(10,2)``.
    """

    __slots__ = ()

    def __new__(cls, value: str) -> "PgType":
        if not isinstance(value, str):
            raise UnsupportedTypeError(f"Unsupported type {value!r}.")
        upper = " ".join(value.strip().upper().split())
        match = _TYPE_PATTERN.fullmatch(upper)
        if match is None or match.group("base") not in VALID_PG_TYPES:
            raise UnsupportedTypeError(
                f'Unsupported type "{value}". Use a standard PostgreSQL type.'
            )
        base = match.group("base")
        args = match.group("args")
        if args is not None:
            args = ",".join(part.strip() for part in args.split(","))
            return super().__new__(cls, f"{base}({args})")
        return super().__new__(cls, base)


def validate_identifier(name: str) -> Identifier:
    """Validate a table or column name.

    Raises:
        InvalidIdentifierError: If the name does not match ``^[A-Za-z_][A-Za-z0-9_]*$``.
    """
    return Identifier(name)


def validate_type(type_expr: str) -> PgType:
    """Validate and normalize a column type expression.

    Raises:
        UnsupportedTypeError: If the base keyword is not allow-listed or the
            modifier is anything other than one or two integers.
    """
    return PgType(type_expr)


def validate_index_method(method: str) -> IndexMethod:
    try:
        return IndexMethod(method.lower())
    except (ValueError, AttributeError) as e:
        choices = ", ".join(m.value for m in IndexMethod)
        raise BadRequestError(f"Invalid index method. Choose: {choices}") from e


def index_name_for(table: Identifier, columns: list[Identifier]) -> Identifier:
    """Deterministic index name ``idx_<table>_<col1>_<col2>...``, cut to 63 bytes."""
    return Identifier(f"{INDEX_PREFIX}{table}_{'_'.join(columns)}"[:MAX_IDENTIFIER_LENGTH])


def validate_droppable_index(name: str) -> Identifier:
    """Only program-generated ``idx_`` indexes may be dropped, never a ``_pkey``."""
    if not name.startswith(INDEX_PREFIX) or name.endswith(PKEY_SUFFIX):
        raise BadRequestError("Cannot drop primary key or system indexes.")
    return Identifier(name)


def validate_extension(name: str) -> str:
    if name not in SAFE_EXTENSIONS:
        raise BadRequestError(f'Extension "{name}" is not in the allowed list.')
    return name


def validate_project_id(project_id: str) -> str:
    """Validate a project id, which doubles as a literal database name."""
    if not isinstance(project_id, str) or not _PROJECT_ID_PATTERN.fullmatch(project_id):
        raise ValueError(f"Invalid project id: {project_id!r}")
    if project_id.startswith("pg_") or project_id in RESERVED_DATABASE_NAMES:
        raise ValueError(f"Project id uses a reserved name: {project_id!r}")
    return project_id


def is_valid_project_id(project_id: str) -> bool:
    try:
        validate_project_id(project_id)
    except ValueError:
        return False
    return True


def validate_origin_url(url: str) -> str:
    """Validate an authorized origin: http(s), a host, and no path.

    Returns the origin without a trailing slash.
    """
    try:
        parsed = urlsplit(url)
    except ValueError as e:
        raise BadRequestError(_ORIGIN_MESSAGE) from e
    if (
        parsed.scheme not in ("http", "https")
        or not parsed.netloc
        or parsed.path not in ("", "/")
        or parsed.query
        or parsed.fragment
    ):
        raise BadRequestError(_ORIGIN_MESSAGE)
    return url.rstrip("/")


def parse_expiry(expiry: str) -> timedelta:
    """Parse a session lifetime such as ``"365d"``, ``"12h"`` or ``"2w"``."""
    match = _EXPIRY_PATTERN.fullmatch(expiry.strip()) if isinstance(expiry, str) else None
    if match is None:
        raise ValueError(f"Invalid expiry {expiry!r}. Use a number followed by s, m, h, d or w.")
    amount, unit = int(match.group(1)), match.group(2)
    return {
        "s": timedelta(seconds=amount),
        "m": timedelta(minutes=amount),
        "h": timedelta(hours=amount),
        "d": timedelta(days=amount),
        "w": timedelta(weeks=amount),
    }[unit]


def sanitize_filename(filename: str) -> str:
    """Replace anything outside ``[A-Za-z0-9._-]`` with ``_``."""
    safe = _UNSAFE_FILENAME_CHARS.sub("_", filename or "")
    if safe in ("", ".", ".."):
        raise BadRequestError("Invalid filename")
    return safe


def normalize_origin(origin: str) -> str:
    """Comparison form of an origin: no surrounding space, no trailing slash, lower case."""
    return origin.strip().rstrip("/").lower()
