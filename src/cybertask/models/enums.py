"""Shared enums for models.

Columns store the enum ``value`` as a string.
"""

from enum import Enum


class UserRole(str, Enum):
    """Global user role. Ordered USER < MANAGER < ADMIN < SUPER_ADMIN."""

    USER = "USER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def at_least(self, minimum: "UserRole") -> bool:
        return self.rank >= minimum.rank


_ROLE_RANK = {
    UserRole.USER: 0,
    UserRole.MANAGER: 1,
    UserRole.ADMIN: 2,
    UserRole.SUPER_ADMIN: 3,
}

PRIVILEGED_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class Priority(str, Enum):
    """Priority shared by projects and tasks. Ordered LOW < ... < CRITICAL."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.CRITICAL: 3,
}


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"


class MemberRole(str, Enum):
    """Role inside a single project."""

    MEMBER = "MEMBER"
    MANAGER = "MANAGER"


class NotificationType(str, Enum):
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_UPDATED = "TASK_UPDATED"
    COMMENT_ADDED = "COMMENT_ADDED"
    PROJECT_INVITE = "PROJECT_INVITE"
