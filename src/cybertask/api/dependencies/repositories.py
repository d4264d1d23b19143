"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.cybertask.api.dependencies.db import DBSession
from src.cybertask.repositories import (
    DashboardRepository,
    EmailVerificationTokenRepository,
    NotificationRepository,
    PasswordResetTokenRepository,
    ProjectRepository,
    RefreshTokenRepository,
    TaskCommentRepository,
    TaskDependencyRepository,
    TaskRepository,
    UserRepository,
)


def get_user_repository(session: DBSession) -> UserRepository:
    return UserRepository(session)


def get_token_repository(session: DBSession) -> RefreshTokenRepository:
    return RefreshTokenRepository(session)


def get_email_verification_repository(session: DBSession) -> EmailVerificationTokenRepository:
    return EmailVerificationTokenRepository(session)


def get_password_reset_repository(session: DBSession) -> PasswordResetTokenRepository:
    return PasswordResetTokenRepository(session)


def get_project_repository(session: DBSession) -> ProjectRepository:
    return ProjectRepository(session)


def get_task_repository(session: DBSession) -> TaskRepository:
    return TaskRepository(session)


def get_dependency_repository(session: DBSession) -> TaskDependencyRepository:
    return TaskDependencyRepository(session)


def get_comment_repository(session: DBSession) -> TaskCommentRepository:
    return TaskCommentRepository(session)


def get_notification_repository(session: DBSession) -> NotificationRepository:
    return NotificationRepository(session)


def get_dashboard_repository(session: DBSession) -> DashboardRepository:
    return DashboardRepository(session)


UserRepo = Annotated[UserRepository, Depends(get_user_repository)]
TokenRepo = Annotated[RefreshTokenRepository, Depends(get_token_repository)]
EmailVerificationRepo = Annotated[
    EmailVerificationTokenRepository, Depends(get_email_verification_repository)
]
PasswordResetRepo = Annotated[PasswordResetTokenRepository, Depends(get_password_reset_repository)]
ProjectRepo = Annotated[ProjectRepository, Depends(get_project_repository)]
TaskRepo = Annotated[TaskRepository, Depends(get_task_repository)]
DependencyRepo = Annotated[TaskDependencyRepository, Depends(get_dependency_repository)]
CommentRepo = Annotated[TaskCommentRepository, Depends(get_comment_repository)]
NotificationRepo = Annotated[NotificationRepository, Depends(get_notification_repository)]
DashboardRepo = Annotated[DashboardRepository, Depends(get_dashboard_repository)]
