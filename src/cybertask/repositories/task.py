"""Repositories for Task, TaskDependency and TaskComment entities."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import case, delete, func, or_
from sqlmodel import select

from src.cybertask.models import Priority, Task, TaskComment, TaskDependency
from src.cybertask.repositories.base import BaseRepository
from src.cybertask.repositories.project import accessible_project_ids

_PRIORITY_RANK = case(
    {priority.value: priority.rank for priority in Priority},
    value=Task.priority,
    else_=-1,
)


@dataclass
class TaskFilters:
    search: str | None = None
    status: str | None = None
    priority: str | None = None
    project_id: UUID | None = None
    assigned_to: UUID | None = None
    unassigned: bool = False
    due_from: datetime | None = None
    due_before: datetime | None = None
    include_archived: bool = False


@dataclass
class TaskCounts:
    comment_count: int = 0
    dependency_count: int = 0
    dependent_count: int = 0


class TaskRepository(BaseRepository[Task]):
    model = Task

    async def get_visible(self, task_id: UUID, user_id: UUID) -> Task | None:
        """Get a task whose project the user owns or has joined."""
        result = await self.session.execute(
            select(Task).where(
                Task.id == task_id,
                Task.project_id.in_(accessible_project_ids(user_id)),  # type: ignore[attr-defined]
            )
        )
        return result.scalar_one_or_none()

    async def list_filtered(
        self,
        filters: TaskFilters,
        page: int,
        limit: int,
        visible_to: UUID | None = None,
    ) -> tuple[list[Task], int]:
        """List tasks ordered by priority rank desc, due date asc (nulls last), newest first."""
        query = select(Task)
        if visible_to is not None:
            query = query.where(Task.project_id.in_(accessible_project_ids(visible_to)))  # type: ignore[attr-defined]
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            query = query.where(
                or_(
                    func.lower(Task.title).like(pattern),
                    func.lower(Task.description).like(pattern),
                )
            )
        if filters.status:
            query = query.where(Task.status == filters.status)
        if filters.priority:
            query = query.where(Task.priority == filters.priority)
        if filters.project_id:
            query = query.where(Task.project_id == filters.project_id)
        if filters.unassigned:
            query = query.where(Task.assigned_to_id.is_(None))  # type: ignore[union-attr]
        elif filters.assigned_to:
            query = query.where(Task.assigned_to_id == filters.assigned_to)
        if filters.due_from:
            query = query.where(Task.due_date >= filters.due_from)  # type: ignore[operator]
        if filters.due_before:
            query = query.where(Task.due_date < filters.due_before)  # type: ignore[operator]
        if not filters.include_archived:
            query = query.where(Task.archived_at.is_(None))  # type: ignore[union-attr]

        query = query.order_by(
            _PRIORITY_RANK.desc(),
            Task.due_date.is_(None),  # type: ignore[union-attr]
            Task.due_date.asc(),  # type: ignore[union-attr]
            Task.created_at.desc(),  # type: ignore[attr-defined]
        )
        return await self.paginate(query, page, limit)

    async def counts_for(self, task_ids: Iterable[UUID]) -> dict[UUID, TaskCounts]:
        """Comment, dependency and dependent counts per task."""
        ids = list(task_ids)
        counts = {task_id: TaskCounts() for task_id in ids}
        if not ids:
            return counts

        comments = await self.session.execute(
            select(TaskComment.task_id, func.count())
            .where(TaskComment.task_id.in_(ids))  # type: ignore[attr-defined]
            .group_by(TaskComment.task_id)
        )
        for task_id, count in comments.all():
            counts[task_id].comment_count = count

        dependencies = await self.session.execute(
            select(TaskDependency.task_id, func.count())
            .where(TaskDependency.task_id.in_(ids))  # type: ignore[attr-defined]
            .group_by(TaskDependency.task_id)
        )
        for task_id, count in dependencies.all():
            counts[task_id].dependency_count = count

        dependents = await self.session.execute(
            select(TaskDependency.depends_on_id, func.count())
            .where(TaskDependency.depends_on_id.in_(ids))  # type: ignore[attr-defined]
            .group_by(TaskDependency.depends_on_id)
        )
        for task_id, count in dependents.all():
            counts[task_id].dependent_count = count

        return counts

    async def delete_with_children(self, task: Task) -> None:
        """Delete comments, the task's own dependency rows, then the task (no commit)."""
        await self.session.execute(delete(TaskComment).where(TaskComment.task_id == task.id))  # type: ignore[arg-type]
        await self.session.execute(
            delete(TaskDependency).where(TaskDependency.task_id == task.id)  # type: ignore[arg-type]
        )
        await self.session.delete(task)


class TaskDependencyRepository(BaseRepository[TaskDependency]):
    model = TaskDependency

    async def get(self, task_id: UUID, depends_on_id: UUID) -> TaskDependency | None:
        result = await self.session.execute(
            select(TaskDependency).where(
                TaskDependency.task_id == task_id,
                TaskDependency.depends_on_id == depends_on_id,
            )
        )
        return result.scalar_one_or_none()

    async def depends_on_ids(self, task_ids: Iterable[UUID]) -> set[UUID]:
        """Ids that any of ``task_ids`` depend on (one hop)."""
        ids = list(task_ids)
        if not ids:
            return set()
        result = await self.session.execute(
            select(TaskDependency.depends_on_id).where(
                TaskDependency.task_id.in_(ids)  # type: ignore[attr-defined]
            )
        )
        return set(result.scalars().all())

    async def list_dependencies(self, task_id: UUID) -> list[tuple[TaskDependency, Task]]:
        """Edges out of ``task_id`` with the depended-on task."""
        result = await self.session.execute(
            select(TaskDependency, Task)
            .join(Task, Task.id == TaskDependency.depends_on_id)  # type: ignore[arg-type]
            .where(TaskDependency.task_id == task_id)
            .order_by(TaskDependency.created_at)
        )
        return [(edge, task) for edge, task in result.all()]

    async def list_dependents(self, task_id: UUID) -> list[tuple[TaskDependency, Task]]:
        """Edges into ``task_id`` with the dependent task."""
        result = await self.session.execute(
            select(TaskDependency, Task)
            .join(Task, Task.id == TaskDependency.task_id)  # type: ignore[arg-type]
            .where(TaskDependency.depends_on_id == task_id)
            .order_by(TaskDependency.created_at)
        )
        return [(edge, task) for edge, task in result.all()]

    async def count_dependents(self, task_id: UUID) -> int:
        return await self.count(
            select(TaskDependency.task_id).where(TaskDependency.depends_on_id == task_id)
        )

    async def clear_dependencies(self, task_id: UUID) -> None:
        await self.session.execute(
            delete(TaskDependency).where(TaskDependency.task_id == task_id)  # type: ignore[arg-type]
        )


class TaskCommentRepository(BaseRepository[TaskComment]):
    model = TaskComment

    async def list_for_task(
        self, task_id: UUID, page: int, limit: int
    ) -> tuple[list[TaskComment], int]:
        """Comments oldest first."""
        query = (
            select(TaskComment)
            .where(TaskComment.task_id == task_id)
            .order_by(TaskComment.created_at.asc())  # type: ignore[attr-defined]
        )
        return await self.paginate(query, page, limit)

    async def list_recent(self, task_id: UUID, limit: int = 50) -> list[TaskComment]:
        result = await self.session.execute(
            select(TaskComment)
            .where(TaskComment.task_id == task_id)
            .order_by(TaskComment.created_at.asc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        return list(result.scalars().all())
