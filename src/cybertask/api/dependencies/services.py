"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.cybertask.api.dependencies.db import DBSession
from src.cybertask.api.dependencies.repositories import (
    CommentRepo,
    DashboardRepo,
    DependencyRepo,
    EmailVerificationRepo,
    NotificationRepo,
    PasswordResetRepo,
    ProjectRepo,
    TaskRepo,
    TokenRepo,
    UserRepo,
)
from src.cybertask.services import (
    AuthService,
    DashboardService,
    EmailVerificationService,
    NotificationService,
    PasswordResetService,
    ProjectService,
    TaskService,
    UserService,
)


def get_auth_service(user_repo: UserRepo, token_repo: TokenRepo, session: DBSession) -> AuthService:
    return AuthService(user_repo, token_repo, session)


def get_email_verification_service(
    user_repo: UserRepo,
    email_verification_repo: EmailVerificationRepo,
    session: DBSession,
) -> EmailVerificationService:
    return EmailVerificationService(user_repo, email_verification_repo, session)


def get_password_reset_service(
    user_repo: UserRepo,
    reset_repo: PasswordResetRepo,
    token_repo: TokenRepo,
    session: DBSession,
) -> PasswordResetService:
    return PasswordResetService(user_repo, reset_repo, token_repo, session)


def get_user_service(user_repo: UserRepo, token_repo: TokenRepo, session: DBSession) -> UserService:
    return UserService(user_repo, token_repo, session)


def get_notification_service(repo: NotificationRepo, session: DBSession) -> NotificationService:
    return NotificationService(repo, session)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


def get_project_service(
    project_repo: ProjectRepo,
    user_repo: UserRepo,
    notification_service: NotificationServiceDep,
    session: DBSession,
) -> ProjectService:
    return ProjectService(project_repo, user_repo, notification_service, session)


ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]


def get_task_service(
    task_repo: TaskRepo,
    dependency_repo: DependencyRepo,
    comment_repo: CommentRepo,
    user_repo: UserRepo,
    project_service: ProjectServiceDep,
    notification_service: NotificationServiceDep,
    session: DBSession,
) -> TaskService:
    return TaskService(
        task_repo,
        dependency_repo,
        comment_repo,
        user_repo,
        project_service,
        notification_service,
        session,
    )


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]


def get_dashboard_service(
    dashboard_repo: DashboardRepo,
    task_service: TaskServiceDep,
    project_service: ProjectServiceDep,
) -> DashboardService:
    return DashboardService(dashboard_repo, task_service, project_service)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
EmailVerificationServiceDep = Annotated[
    EmailVerificationService, Depends(get_email_verification_service)
]
PasswordResetServiceDep = Annotated[PasswordResetService, Depends(get_password_reset_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
