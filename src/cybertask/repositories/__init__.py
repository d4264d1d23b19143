"""Repository layer - data access abstraction."""

from src.cybertask.repositories.base import BaseRepository
from src.cybertask.repositories.dashboard import DashboardRepository, TaskStatusCounts
from src.cybertask.repositories.notification import NotificationRepository
from src.cybertask.repositories.project import ProjectRepository, accessible_project_ids
from src.cybertask.repositories.task import (
    TaskCommentRepository,
    TaskCounts,
    TaskDependencyRepository,
    TaskFilters,
    TaskRepository,
)
from src.cybertask.repositories.token import (
    EmailVerificationTokenRepository,
    PasswordResetTokenRepository,
    RefreshTokenRepository,
)
from src.cybertask.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "DashboardRepository",
    "EmailVerificationTokenRepository",
    "NotificationRepository",
    "PasswordResetTokenRepository",
    "ProjectRepository",
    "RefreshTokenRepository",
    "TaskCommentRepository",
    "TaskCounts",
    "TaskDependencyRepository",
    "TaskFilters",
    "TaskRepository",
    "TaskStatusCounts",
    "UserRepository",
    "accessible_project_ids",
]
