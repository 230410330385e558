"""Model exports.

Import from here: `from src.zerobase.models import Project`
"""

from src.zerobase.models.project import Project
from src.zerobase.models.tenant import (
    AUTH_USERS_COLUMNS,
    AUTH_USERS_TABLE,
    LOGS_COLUMNS,
    LOGS_TABLE,
    PROTECTED_USER_FIELDS,
    SECRET_USER_FIELDS,
    SYSTEM_INDEXES,
    SYSTEM_TABLES,
)

__all__ = [
    # Main database
    "Project",
    # Tenant system tables
    "AUTH_USERS_COLUMNS",
    "AUTH_USERS_TABLE",
    "LOGS_COLUMNS",
    "LOGS_TABLE",
    "PROTECTED_USER_FIELDS",
    "SECRET_USER_FIELDS",
    "SYSTEM_INDEXES",
    "SYSTEM_TABLES",
]
