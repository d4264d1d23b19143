"""Password hashing, JWT issuance/verification and token hashing."""

from datetime import UTC, datetime, timedelta
from hashlib import sha256
from typing import Any
from uuid import UUID, uuid4

import argon2
from jose import jwt

from src.cybertask.core.config import get_settings


class TokenType:
    """Values of the ``type`` claim."""

    ACCESS = "access"
    REFRESH = "refresh"


def hash_token(token: str) -> str:
    """Hash a token using SHA256 for storage and lookup."""
    return sha256(token.encode()).hexdigest()


def _create_password_hasher() -> argon2.PasswordHasher:
    settings = get_settings()
    return argon2.PasswordHasher(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )


_password_hasher = _create_password_hasher()


def hash_password(password: str) -> str:
    """Hash password using Argon2id."""
    return _password_hasher.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash. Returns False on any mismatch or bad hash."""
    try:
        return _password_hasher.verify(hashed, password)
    except (argon2.exceptions.VerifyMismatchError, argon2.exceptions.InvalidHashError):
        return False
    except argon2.exceptions.VerificationError:
        return False


# Verified against when the email is unknown so login timing doesn't leak existence
DUMMY_PASSWORD_HASH = hash_password("cybertask-timing-equalizer")


def _encode(claims: dict[str, Any], expire: datetime) -> str:
    settings = get_settings()
    to_encode = {
        **claims,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": datetime.now(UTC),
        "exp": expire,
    }
    return jwt.encode(  # type: ignore[no-any-return]
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def create_access_token(
    subject: str | UUID,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a short-lived JWT access token."""
    settings = get_settings()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    return _encode(
        {"sub": str(subject), "email": email, "role": role, "type": TokenType.ACCESS},
        expire,
    )


def refresh_token_lifetime(remember_me: bool = False) -> timedelta:
    settings = get_settings()
    days = (
        settings.remember_me_refresh_token_expire_days
        if remember_me
        else settings.refresh_token_expire_days
    )
    return timedelta(days=days)


def create_refresh_token(
    subject: str | UUID,
    remember_me: bool = False,
) -> tuple[str, datetime]:
    """Create a refresh token. Returns (token, expiry as naive UTC datetime).

    Each token carries a random ``jti`` so two tokens issued in the same second
    for the same user still hash differently.
    """
    expire = datetime.now(UTC) + refresh_token_lifetime(remember_me)
    token = _encode(
        {
            "sub": str(subject),
            "type": TokenType.REFRESH,
            "remember_me": remember_me,
            "jti": str(uuid4()),
        },
        expire,
    )
    return token, expire.replace(tzinfo=None)


def read_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT.

    Raises:
        jose.ExpiredSignatureError: the token is expired.
        jose.JWTError: signature, issuer, audience or format is invalid.
    """
    settings = get_settings()
    return jwt.decode(  # type: ignore[no-any-return]
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
