"""Model exports.

Import from here: `from src.cybertask.models import User, Task`
Importing this package registers every table on ``SQLModel.metadata``.
"""

from src.cybertask.models.auth import (
    EmailVerificationToken,
    PasswordResetToken,
    RefreshToken,
)
from src.cybertask.models.enums import (
    PRIVILEGED_ROLES,
    MemberRole,
    NotificationType,
    Priority,
    ProjectStatus,
    TaskStatus,
    UserRole,
)
from src.cybertask.models.notification import Notification
from src.cybertask.models.project import Project, ProjectMember
from src.cybertask.models.task import Task, TaskComment, TaskDependency
from src.cybertask.models.user import User

__all__ = [
    # Enums
    "PRIVILEGED_ROLES",
    "MemberRole",
    "NotificationType",
    "Priority",
    "ProjectStatus",
    "TaskStatus",
    "UserRole",
    # Models
    "EmailVerificationToken",
    "Notification",
    "PasswordResetToken",
    "Project",
    "ProjectMember",
    "RefreshToken",
    "Task",
    "TaskComment",
    "TaskDependency",
    "User",
]
