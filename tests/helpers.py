"""Test helper functions for common data creation patterns."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.core.security import create_access_token
from src.cybertask.models import Project, ProjectMember, Task, User, UserRole
from tests.factories import ProjectFactory, ProjectMemberFactory, TaskFactory, UserFactory

# A second password that passes the strength policy, for registration and resets
NEW_PASSWORD = "Quartz-Lantern-91-Orbit!"


def auth_headers(user: User) -> dict[str, str]:
    """Bearer header for ``user`` without going through /auth/login."""
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


async def create_user(
    session: AsyncSession,
    role: UserRole = UserRole.USER,
    **user_kwargs,
) -> User:
    """Create and commit a user.

    Args:
        session: Database session
        role: Global role (default: USER)
        **user_kwargs: Additional args passed to UserFactory
    """
    user = UserFactory.with_role(role, **user_kwargs)
    session.add(user)
    await session.commit()
    return user


async def create_project(
    session: AsyncSession,
    owner: User,
    members: list[User] | None = None,
    **project_kwargs,
) -> Project:
    """Create a project owned by ``owner`` with optional stored members."""
    project = ProjectFactory.build(owner_id=owner.id, **project_kwargs)
    session.add(project)
    await session.flush()
    for member in members or []:
        session.add(ProjectMemberFactory.build(project_id=project.id, user_id=member.id))
    await session.commit()
    return project


async def add_member(session: AsyncSession, project: Project, user: User) -> ProjectMember:
    membership = ProjectMemberFactory.build(project_id=project.id, user_id=user.id)
    session.add(membership)
    await session.commit()
    return membership


async def create_task(
    session: AsyncSession,
    project: Project,
    creator: User,
    **task_kwargs,
) -> Task:
    """Create and commit a task in ``project``."""
    task = TaskFactory.build(project_id=project.id, created_by_id=creator.id, **task_kwargs)
    session.add(task)
    await session.commit()
    return task
