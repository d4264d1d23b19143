"""Authentication and authorization dependencies."""

from collections.abc import Awaitable, Callable
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, Header, status
from jose import ExpiredSignatureError, JWTError

from src.cybertask.api.dependencies.repositories import UserRepo
from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import bind_user_context
from src.cybertask.core.security import TokenType, read_token
from src.cybertask.models import User, UserRole
from src.cybertask.repositories import UserRepository


def _unauthorized(message: str, code: str) -> AppError:
    return AppError(message, status.HTTP_401_UNAUTHORIZED, code)


def verify_access_token(token: str) -> dict[str, Any]:
    """Decode an access token, mapping every failure onto an AppError."""
    try:
        payload = read_token(token)
    except ExpiredSignatureError:
        raise _unauthorized("Token expired", "TOKEN_EXPIRED") from None
    except JWTError:
        raise _unauthorized("Invalid token", "INVALID_TOKEN") from None

    if payload.get("type") != TokenType.ACCESS or not payload.get("sub"):
        raise _unauthorized("Invalid token", "INVALID_TOKEN")
    return payload


async def authenticate_token(token: str, user_repo: UserRepository) -> User:
    """Resolve an access token to an active user.

    Shared by the HTTP dependency and the WebSocket handshake.
    """
    if not token:
        raise _unauthorized("Access token required", "NO_TOKEN")
    payload = verify_access_token(token)
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise _unauthorized("Invalid token", "INVALID_TOKEN") from None

    user = await user_repo.get_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found", "USER_NOT_FOUND")
    if not user.is_active:
        raise _unauthorized("Account is deactivated", "ACCOUNT_DEACTIVATED")
    return user


async def get_current_user(
    user_repo: UserRepo,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Validate the bearer access token and return the current user."""
    if not authorization or not authorization.startswith("Bearer ") or not authorization[7:]:
        raise _unauthorized("Access token required", "NO_TOKEN")

    user = await authenticate_token(authorization[7:], user_repo)
    bind_user_context(user.id, user.role, user.email)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_role(minimum: UserRole) -> Callable[[User], Awaitable[User]]:
    """Build a dependency that admits users whose role is at least ``minimum``."""

    async def _require_role(user: CurrentUser) -> User:
        if not user.role_enum.at_least(minimum):
            raise AppError(
                "Insufficient permissions",
                status.HTTP_403_FORBIDDEN,
                "INSUFFICIENT_PERMISSIONS",
            )
        return user

    return _require_role


ManagerUser = Annotated[User, Depends(require_role(UserRole.MANAGER))]
AdminUser = Annotated[User, Depends(require_role(UserRole.ADMIN))]
