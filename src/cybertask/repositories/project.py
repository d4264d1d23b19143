"""Repository for Project and ProjectMember entities."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, func, or_, update
from sqlmodel import select

from src.cybertask.models import Project, ProjectMember, Task, User
from src.cybertask.repositories.base import BaseRepository


def accessible_project_ids(user_id: UUID):  # type: ignore[no-untyped-def]
    """Subquery of ids of projects the user owns or has joined."""
    joined = select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
    return select(Project.id).where(
        or_(Project.owner_id == user_id, Project.id.in_(joined))  # type: ignore[attr-defined]
    )


class ProjectRepository(BaseRepository[Project]):
    model = Project

    async def list_for_user(
        self,
        user_id: UUID,
        page: int,
        limit: int,
        search: str | None = None,
        status: str | None = None,
        priority: str | None = None,
    ) -> tuple[list[Project], int]:
        """List projects owned or joined by the user, most recently updated first."""
        query = select(Project).where(Project.id.in_(accessible_project_ids(user_id)))  # type: ignore[attr-defined]
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(Project.name).like(pattern),
                    func.lower(Project.description).like(pattern),
                )
            )
        if status:
            query = query.where(Project.status == status)
        if priority:
            query = query.where(Project.priority == priority)
        query = query.order_by(Project.updated_at.desc())  # type: ignore[attr-defined]
        return await self.paginate(query, page, limit)

    async def is_member(self, project_id: UUID, user_id: UUID) -> bool:
        result = await self.session.execute(
            select(ProjectMember.user_id).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.first() is not None

    async def get_member(self, project_id: UUID, user_id: UUID) -> ProjectMember | None:
        result = await self.session.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_members(self, project_id: UUID) -> list[tuple[ProjectMember, User]]:
        """Members with their user rows, oldest membership first."""
        result = await self.session.execute(
            select(ProjectMember, User)
            .join(User, User.id == ProjectMember.user_id)  # type: ignore[arg-type]
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.joined_at)
        )
        return [(member, user) for member, user in result.all()]

    def add_member(self, member: ProjectMember) -> None:
        self.session.add(member)

    async def delete_members(self, project_id: UUID) -> None:
        await self.session.execute(
            delete(ProjectMember).where(ProjectMember.project_id == project_id)  # type: ignore[arg-type]
        )

    async def unassign_member_tasks(self, project_id: UUID, user_id: UUID) -> int:
        """Clear the assignee on the user's tasks in one project."""
        result = await self.session.execute(
            update(Task)
            .where(Task.project_id == project_id)  # type: ignore[arg-type]
            .where(Task.assigned_to_id == user_id)  # type: ignore[arg-type]
            .values(assigned_to_id=None)
        )
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def count_tasks(self, project_id: UUID) -> int:
        return await self.count(select(Task.id).where(Task.project_id == project_id))

    async def task_counts(self, project_ids: Iterable[UUID]) -> dict[UUID, int]:
        ids = list(project_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(Task.project_id, func.count())
            .where(Task.project_id.in_(ids))  # type: ignore[attr-defined]
            .group_by(Task.project_id)
        )
        return {project_id: count for project_id, count in result.all()}

    async def member_counts(self, project_ids: Iterable[UUID]) -> dict[UUID, int]:
        ids = list(project_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(ProjectMember.project_id, func.count())
            .where(ProjectMember.project_id.in_(ids))  # type: ignore[attr-defined]
            .group_by(ProjectMember.project_id)
        )
        return {project_id: count for project_id, count in result.all()}

    async def task_status_breakdown(self, project_id: UUID) -> dict[str, int]:
        result = await self.session.execute(
            select(Task.status, func.count())
            .where(Task.project_id == project_id)
            .group_by(Task.status)
        )
        return {status: count for status, count in result.all()}
