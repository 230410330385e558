"""System tables every tenant database carries.

User tables are created dynamically, so these are kept as ordered
column -> definition maps for the additive migration rather than as ORM models.
Definitions are fixed program text, never tenant input.
"""

from typing import Final

AUTH_USERS_TABLE: Final[str] = "auth_users"
LOGS_TABLE: Final[str] = "logs"

AUTH_USERS_COLUMNS: Final[dict[str, str]] = {
    "id": "SERIAL PRIMARY KEY",
    "email": "VARCHAR(255) UNIQUE NOT NULL",
    "name": "VARCHAR(255)",
    "password_hash": "VARCHAR(255)",
    "google_id": "VARCHAR(255)",
    "otp_secret": "VARCHAR(255)",
    "last_login": "TIMESTAMP",
    "last_ip": "VARCHAR(45)",
    "login_count": "INTEGER DEFAULT 0",
    "failed_attempts": "INTEGER DEFAULT 0",
    "last_failed_attempt": "TIMESTAMP",
    "status": "VARCHAR(20) DEFAULT 'active'",
    "email_verified": "BOOLEAN DEFAULT false",
    "phone": "VARCHAR(20)",
    "phone_verified": "BOOLEAN DEFAULT false",
    "jwt_expiry": "VARCHAR(10) DEFAULT '365d'",
    "preferences": "JSONB DEFAULT '{}'",
    "metadata": "JSONB DEFAULT '{}'",
    "created_at": "TIMESTAMP DEFAULT NOW()",
    "updated_at": "TIMESTAMP DEFAULT NOW()",
}

LOGS_COLUMNS: Final[dict[str, str]] = {
    "id": "SERIAL PRIMARY KEY",
    "project_id": "VARCHAR(255)",
    "endpoint": "VARCHAR(255)",
    "method": "VARCHAR(10)",
    "status": "INTEGER",
    "message": "TEXT",
    "metadata": "JSONB DEFAULT '{}'",
    "created_at": "TIMESTAMP DEFAULT NOW()",
}

SYSTEM_TABLES: Final[dict[str, dict[str, str]]] = {
    AUTH_USERS_TABLE: AUTH_USERS_COLUMNS,
    LOGS_TABLE: LOGS_COLUMNS,
}

# Lookup indexes added alongside the auth_users migration.
SYSTEM_INDEXES: Final[dict[str, list[tuple[str, str]]]] = {
    AUTH_USERS_TABLE: [
        ("idx_auth_users_email", "email"),
        ("idx_auth_users_google_id", "google_id"),
    ],
    LOGS_TABLE: [],
}

# Columns the generic document-update path may never write.
PROTECTED_USER_FIELDS: Final[frozenset[str]] = frozenset({"id", "password_hash", "created_at"})

# Columns never serialized back to API callers.
SECRET_USER_FIELDS: Final[frozenset[str]] = frozenset({"password_hash", "otp_secret"})
