"""Service layer - business logic and transaction control."""

from src.cybertask.services.auth_service import AuthService
from src.cybertask.services.dashboard_service import DashboardService
from src.cybertask.services.email_verification_service import EmailVerificationService
from src.cybertask.services.notification_service import NotificationService
from src.cybertask.services.password_reset_service import PasswordResetService
from src.cybertask.services.project_service import ProjectService
from src.cybertask.services.task_service import TaskService
from src.cybertask.services.user_service import UserService

__all__ = [
    "AuthService",
    "DashboardService",
    "EmailVerificationService",
    "NotificationService",
    "PasswordResetService",
    "ProjectService",
    "TaskService",
    "UserService",
]
