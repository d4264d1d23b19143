"""Repository for User entity."""

from uuid import UUID

from sqlalchemy import delete, func, or_, update
from sqlmodel import select

from src.cybertask.models import (
    EmailVerificationToken,
    Notification,
    PasswordResetToken,
    Project,
    ProjectMember,
    RefreshToken,
    Task,
    TaskComment,
    User,
)
from src.cybertask.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email address."""
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def list_filtered(
        self,
        page: int,
        limit: int,
        search: str | None = None,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[User], int]:
        """List users newest first with optional search and filters."""
        query = select(User)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(User.username).like(pattern),
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                )
            )
        if role:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active == is_active)
        query = query.order_by(User.created_at.desc())  # type: ignore[attr-defined]
        return await self.paginate(query, page, limit)

    async def count_owned_projects(self, user_id: UUID) -> int:
        return await self.count(select(Project.id).where(Project.owner_id == user_id))

    async def count_assigned_tasks(self, user_id: UUID) -> int:
        return await self.count(select(Task.id).where(Task.assigned_to_id == user_id))

    async def transfer_and_delete(self, user: User, successor_id: UUID) -> None:
        """Hand the user's data to ``successor_id`` and delete the user (no commit).

        Memberships, notifications and tokens are removed; assigned tasks become
        unassigned; owned projects, authored tasks and comments move to the
        successor.
        """
        user_id = user.id
        transferred = select(Project.id).where(Project.owner_id == user_id)

        await self.session.execute(delete(ProjectMember).where(ProjectMember.user_id == user_id))  # type: ignore[arg-type]
        # The successor becomes owner, and owners are never stored as members
        await self.session.execute(
            delete(ProjectMember).where(
                ProjectMember.user_id == successor_id,  # type: ignore[arg-type]
                ProjectMember.project_id.in_(transferred),  # type: ignore[attr-defined]
            )
        )
        await self.session.execute(
            update(Task).where(Task.assigned_to_id == user_id).values(assigned_to_id=None)  # type: ignore[arg-type]
        )
        await self.session.execute(
            update(Project).where(Project.owner_id == user_id).values(owner_id=successor_id)  # type: ignore[arg-type]
        )
        await self.session.execute(
            update(Task).where(Task.created_by_id == user_id).values(created_by_id=successor_id)  # type: ignore[arg-type]
        )
        await self.session.execute(
            update(TaskComment).where(TaskComment.user_id == user_id).values(user_id=successor_id)  # type: ignore[arg-type]
        )
        for model in (Notification, RefreshToken, PasswordResetToken, EmailVerificationToken):
            await self.session.execute(delete(model).where(model.user_id == user_id))  # type: ignore[attr-defined]
        await self.session.delete(user)
