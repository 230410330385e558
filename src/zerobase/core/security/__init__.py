"""Security utilities - credential store and SQL identifier validators.

Re-exports all security-related functions for convenience.
"""

from src.zerobase.core.security.crypto import (
    generate_api_key,
    hash_api_key,
    hash_password,
    issue_session_token,
    verify_api_key,
    verify_password,
    verify_session_token,
)
from src.zerobase.core.security.validators import (
    Identifier,
    IndexMethod,
    PgType,
    index_name_for,
    is_valid_project_id,
    normalize_origin,
    parse_expiry,
    sanitize_filename,
    validate_droppable_index,
    validate_extension,
    validate_identifier,
    validate_index_method,
    validate_origin_url,
    validate_project_id,
    validate_type,
)

__all__ = [
    # Crypto
    "generate_api_key",
    "hash_api_key",
    "hash_password",
    "issue_session_token",
    "verify_api_key",
    "verify_password",
    "verify_session_token",
    # Validators
    "Identifier",
    "IndexMethod",
    "PgType",
    "index_name_for",
    "is_valid_project_id",
    "normalize_origin",
    "parse_expiry",
    "sanitize_filename",
    "validate_droppable_index",
    "validate_extension",
    "validate_identifier",
    "validate_index_method",
    "validate_origin_url",
    "validate_project_id",
    "validate_type",
]
