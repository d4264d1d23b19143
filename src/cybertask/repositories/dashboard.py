"""Read-only aggregate queries for the dashboard."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.cybertask.models import Project, Task, TaskStatus
from src.cybertask.models.base import utc_now
from src.cybertask.repositories.project import accessible_project_ids


@dataclass
class TaskStatusCounts:
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    todo_tasks: int
    review_tasks: int
    overdue_tasks: int
    total_projects: int


class DashboardRepository:
    """Aggregates over the projects a user owns or has joined."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def task_counts(self, user_id: UUID) -> TaskStatusCounts:
        """All dashboard counters in a single statement."""
        scope = accessible_project_ids(user_id)
        task_id = Task.id

        def by_status(status: TaskStatus):  # type: ignore[no-untyped-def]
            return func.count(task_id).filter(Task.status == status.value)

        total_projects = (
            select(func.count()).select_from(scope.subquery()).scalar_subquery()
        )
        stmt = select(
            func.count(task_id),
            by_status(TaskStatus.DONE),
            by_status(TaskStatus.IN_PROGRESS),
            by_status(TaskStatus.TODO),
            by_status(TaskStatus.IN_REVIEW),
            func.count(task_id).filter(
                Task.due_date < utc_now(),  # type: ignore[operator]
                Task.status != TaskStatus.DONE.value,
            ),
            total_projects,
        ).where(Task.project_id.in_(scope))  # type: ignore[attr-defined]

        row = (await self.session.execute(stmt)).one()
        return TaskStatusCounts(*(int(value or 0) for value in row))

    async def recent_tasks(self, user_id: UUID, limit: int) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .where(Task.project_id.in_(accessible_project_ids(user_id)))  # type: ignore[attr-defined]
            .order_by(Task.updated_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        return list(result.scalars().all())

    async def recent_projects(self, user_id: UUID, limit: int = 5) -> list[Project]:
        result = await self.session.execute(
            select(Project)
            .where(Project.id.in_(accessible_project_ids(user_id)))  # type: ignore[attr-defined]
            .order_by(Project.updated_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        return list(result.scalars().all())
