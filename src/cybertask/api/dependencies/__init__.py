"""FastAPI dependency injection definitions."""

from src.cybertask.api.dependencies.auth import (
    AdminUser,
    CurrentUser,
    ManagerUser,
    authenticate_token,
    get_current_user,
    require_role,
    verify_access_token,
)
from src.cybertask.api.dependencies.db import DBSession, get_db_session
from src.cybertask.api.dependencies.pagination import PageParams, Pagination
from src.cybertask.api.dependencies.repositories import UserRepo
from src.cybertask.api.dependencies.services import (
    AuthServiceDep,
    DashboardServiceDep,
    EmailVerificationServiceDep,
    NotificationServiceDep,
    PasswordResetServiceDep,
    ProjectServiceDep,
    TaskServiceDep,
    UserServiceDep,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Auth
    "AdminUser",
    "CurrentUser",
    "ManagerUser",
    "authenticate_token",
    "get_current_user",
    "require_role",
    "verify_access_token",
    # Pagination
    "PageParams",
    "Pagination",
    # Repositories
    "UserRepo",
    # Services
    "AuthServiceDep",
    "DashboardServiceDep",
    "EmailVerificationServiceDep",
    "NotificationServiceDep",
    "PasswordResetServiceDep",
    "ProjectServiceDep",
    "TaskServiceDep",
    "UserServiceDep",
]
