"""Security utilities - crypto and password policy."""

from src.cybertask.core.security.crypto import (
    DUMMY_PASSWORD_HASH,
    TokenType,
    create_access_token,
    create_refresh_token,
    hash_password,
    hash_token,
    read_token,
    refresh_token_lifetime,
    verify_password,
)
from src.cybertask.core.security.passwords import validate_password_strength

__all__ = [
    # Crypto
    "DUMMY_PASSWORD_HASH",
    "TokenType",
    "create_access_token",
    "create_refresh_token",
    "hash_password",
    "hash_token",
    "read_token",
    "refresh_token_lifetime",
    "verify_password",
    # Password policy
    "validate_password_strength",
]
