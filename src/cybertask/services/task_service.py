"""Tasks, their comments and their dependency edges.

A task is visible to a user exactly when its project is. Every change that
alters a task is broadcast to the project's real-time room after commit.
"""

from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import get_logger
from src.cybertask.core.realtime import TaskEvent, connection_manager
from src.cybertask.models import (
    NotificationType,
    Project,
    Task,
    TaskComment,
    TaskDependency,
    TaskStatus,
    User,
)
from src.cybertask.models.base import column_values, utc_now
from src.cybertask.repositories import (
    TaskCommentRepository,
    TaskDependencyRepository,
    TaskFilters,
    TaskRepository,
    UserRepository,
)
from src.cybertask.schemas.common import PaginationMeta
from src.cybertask.schemas.project import ProjectSummary
from src.cybertask.schemas.task import (
    CommentList,
    CommentRead,
    DependencyRead,
    DependentRead,
    TaskCreate,
    TaskDeleted,
    TaskDetail,
    TaskList,
    TaskListItem,
    TaskRead,
    TaskSummary,
    TaskUpdate,
)
from src.cybertask.schemas.user import UserSummary
from src.cybertask.services.dependency_graph import would_create_cycle
from src.cybertask.services.notification_service import NotificationService
from src.cybertask.services.project_service import ProjectService, is_admin

logger = get_logger(__name__)


def _task_not_found() -> AppError:
    return AppError("Task not found", status.HTTP_404_NOT_FOUND, "TASK_NOT_FOUND")


def _circular() -> AppError:
    return AppError(
        "Dependency would create a circular chain",
        status.HTTP_400_BAD_REQUEST,
        "CIRCULAR_DEPENDENCY",
    )


def _user_summary(users: dict[UUID, User], user_id: UUID | None) -> UserSummary | None:
    user = users.get(user_id) if user_id else None
    return UserSummary.model_validate(user) if user else None


class TaskService:
    def __init__(
        self,
        task_repo: TaskRepository,
        dependency_repo: TaskDependencyRepository,
        comment_repo: TaskCommentRepository,
        user_repo: UserRepository,
        project_service: ProjectService,
        notification_service: NotificationService,
        session: AsyncSession,
    ):
        self.task_repo = task_repo
        self.dependency_repo = dependency_repo
        self.comment_repo = comment_repo
        self.user_repo = user_repo
        self.projects = project_service
        self.notifications = notification_service
        self.session = session

    # Access

    async def get_visible(self, task_id: UUID, user: User) -> Task:
        if is_admin(user):
            task = await self.task_repo.get_by_id(task_id)
        else:
            task = await self.task_repo.get_visible(task_id, user.id)
        if task is None:
            raise _task_not_found()
        return task

    async def _check_assignee(self, project: Project, assignee_id: UUID) -> None:
        if not await self.projects.is_participant(project, assignee_id):
            raise AppError(
                "Assignee must be the project owner or a project member",
                status.HTTP_400_BAD_REQUEST,
                "USER_NOT_PROJECT_MEMBER",
            )

    # Views

    async def build_list_items(self, tasks: list[Task]) -> list[TaskListItem]:
        projects = await self.projects.project_repo.get_many(t.project_id for t in tasks)
        users = await self.user_repo.get_many(
            {t.created_by_id for t in tasks}
            | {t.assigned_to_id for t in tasks if t.assigned_to_id}
        )
        counts = await self.task_repo.counts_for(t.id for t in tasks)
        items = []
        for task in tasks:
            project = projects.get(task.project_id)
            task_counts = counts[task.id]
            items.append(
                TaskListItem(
                    **TaskRead.model_validate(task).model_dump(),
                    project=ProjectSummary.model_validate(project) if project else None,
                    assigned_to=_user_summary(users, task.assigned_to_id),
                    created_by=_user_summary(users, task.created_by_id),
                    comment_count=task_counts.comment_count,
                    dependency_count=task_counts.dependency_count,
                    dependent_count=task_counts.dependent_count,
                )
            )
        return items

    async def _comment_views(self, comments: list[TaskComment]) -> list[CommentRead]:
        users = await self.user_repo.get_many(c.user_id for c in comments)
        return [
            CommentRead(
                id=c.id,
                task_id=c.task_id,
                content=c.content,
                user=_user_summary(users, c.user_id),
                created_at=c.created_at,
                updated_at=c.updated_at,
            )
            for c in comments
        ]

    async def _dependency_views(self, task_id: UUID) -> list[DependencyRead]:
        return [
            DependencyRead(
                task_id=edge.task_id,
                depends_on_id=edge.depends_on_id,
                created_at=edge.created_at,
                depends_on=TaskSummary.model_validate(target),
            )
            for edge, target in await self.dependency_repo.list_dependencies(task_id)
        ]

    # Side effects

    def _notify(
        self,
        recipient_id: UUID | None,
        actor: User,
        type: NotificationType,
        title: str,
        message: str,
        task: Task,
    ) -> None:
        if recipient_id is None or recipient_id == actor.id:
            return
        self.notifications.stage(
            recipient_id,
            type,
            title,
            message,
            {"task_id": str(task.id), "project_id": str(task.project_id)},
        )

    async def _emit(self, task: Task, event: TaskEvent, item: TaskListItem | None = None) -> None:
        """Broadcast to the project's room. Never fails the request."""
        try:
            data = item or (await self.build_list_items([task]))[0]
            await connection_manager.emit_task_event(task.project_id, event, data)
        except Exception as e:
            logger.warning("Task event broadcast failed", task_event=event.value, error=str(e))

    async def _commit(self) -> None:
        """Commit, then push staged notifications."""
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            self.notifications.discard()
            raise
        await self.notifications.publish()

    async def _rollback(self) -> None:
        await self.session.rollback()
        self.notifications.discard()

    # Dependencies

    async def _require_same_project(self, project_id: UUID, dependency_ids: list[UUID]) -> list[UUID]:
        wanted = list(dict.fromkeys(dependency_ids))
        found = await self.task_repo.get_many(wanted)
        for dependency_id in wanted:
            target = found.get(dependency_id)
            if target is None or target.project_id != project_id:
                raise AppError(
                    "Dependencies must be existing tasks in the same project",
                    status.HTTP_400_BAD_REQUEST,
                    "INVALID_DEPENDENCY",
                )
        return wanted

    async def _replace_dependencies(self, task: Task, dependency_ids: list[UUID]) -> None:
        """Swap the task's dependency set, checking each new edge for cycles (no commit)."""
        await self.dependency_repo.clear_dependencies(task.id)
        await self.session.flush()
        for dependency_id in dependency_ids:
            if await would_create_cycle(self.dependency_repo, task.id, dependency_id):
                raise _circular()
            self.dependency_repo.add(TaskDependency(task_id=task.id, depends_on_id=dependency_id))
            # Later checks in this loop must see this edge
            await self.session.flush()

    # Operations

    async def create(self, user: User, data: TaskCreate) -> TaskListItem:
        project = await self.projects.get_accessible(data.project_id, user)
        if data.assigned_to_id:
            await self._check_assignee(project, data.assigned_to_id)
        dependency_ids = await self._require_same_project(project.id, data.dependencies)

        try:
            task = Task(
                **column_values(data.model_dump(exclude={"dependencies"})),
                created_by_id=user.id,
            )
            self.task_repo.add(task)
            await self.session.flush()
            # A brand new task has no dependents, so none of these edges can close a cycle
            for dependency_id in dependency_ids:
                self.dependency_repo.add(
                    TaskDependency(task_id=task.id, depends_on_id=dependency_id)
                )
            self._notify(
                task.assigned_to_id,
                user,
                NotificationType.TASK_ASSIGNED,
                "New task assigned",
                f"{user.full_name} assigned you '{task.title}'",
                task,
            )
        except Exception:
            await self._rollback()
            raise
        await self._commit()

        item = (await self.build_list_items([task]))[0]
        await self._emit(task, TaskEvent.CREATED, item)
        logger.info("Task created", task_id=str(task.id), project_id=str(task.project_id))
        return item

    async def list_tasks(
        self, user: User, filters: TaskFilters, page: int, limit: int, scoped: bool = True
    ) -> TaskList:
        """List tasks. ``scoped=False`` skips the visibility filter when the caller
        has already checked access to ``filters.project_id``.
        """
        tasks, total = await self.task_repo.list_filtered(
            filters, page, limit, visible_to=user.id if scoped else None
        )
        return TaskList(
            tasks=await self.build_list_items(tasks),
            pagination=PaginationMeta.from_counts(page, limit, total),
        )

    async def list_project_tasks(
        self, project_id: UUID, user: User, filters: TaskFilters, page: int, limit: int
    ) -> TaskList:
        await self.projects.get_accessible(project_id, user)
        filters.project_id = project_id
        return await self.list_tasks(user, filters, page, limit, scoped=False)

    async def get_detail(self, task_id: UUID, user: User) -> TaskDetail:
        task = await self.get_visible(task_id, user)
        item = (await self.build_list_items([task]))[0]
        dependents = [
            DependentRead(
                task_id=edge.task_id,
                depends_on_id=edge.depends_on_id,
                created_at=edge.created_at,
                task=TaskSummary.model_validate(source),
            )
            for edge, source in await self.dependency_repo.list_dependents(task.id)
        ]
        return TaskDetail(
            **item.model_dump(),
            comments=await self._comment_views(await self.comment_repo.list_recent(task.id)),
            dependencies=await self._dependency_views(task.id),
            dependents=dependents,
        )

    async def update(self, task_id: UUID, user: User, data: TaskUpdate) -> TaskListItem:
        task = await self.get_visible(task_id, user)
        project = await self.projects.get_accessible(task.project_id, user)
        changes = column_values(data.model_dump(exclude_unset=True, exclude={"dependencies"}))

        newly_assigned: UUID | None = None
        new_assignee = changes.get("assigned_to_id")
        if new_assignee is not None and new_assignee != task.assigned_to_id:
            await self._check_assignee(project, new_assignee)
            newly_assigned = new_assignee
        dependency_ids = (
            await self._require_same_project(project.id, data.dependencies)
            if data.dependencies is not None
            else None
        )
        status_changed = "status" in changes and changes["status"] != task.status

        try:
            for field, value in changes.items():
                setattr(task, field, value)
            task.updated_at = utc_now()
            self.session.add(task)
            if dependency_ids is not None:
                await self._replace_dependencies(task, dependency_ids)

            self._notify(
                newly_assigned,
                user,
                NotificationType.TASK_ASSIGNED,
                "Task assigned",
                f"{user.full_name} assigned you '{task.title}'",
                task,
            )
            if status_changed and newly_assigned is None:
                self._notify(
                    task.assigned_to_id,
                    user,
                    NotificationType.TASK_UPDATED,
                    "Task updated",
                    f"'{task.title}' moved to {task.status}",
                    task,
                )
        except Exception:
            await self._rollback()
            raise
        await self._commit()

        item = (await self.build_list_items([task]))[0]
        await self._emit(task, TaskEvent.UPDATED, item)
        return item

    async def delete(self, task_id: UUID, user: User) -> None:
        task = await self.get_visible(task_id, user)
        if await self.dependency_repo.count_dependents(task.id):
            raise AppError(
                "Other tasks depend on this task",
                status.HTTP_400_BAD_REQUEST,
                "TASK_HAS_DEPENDENCIES",
            )
        project_id = task.project_id
        try:
            await self.task_repo.delete_with_children(task)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        try:
            await connection_manager.emit_task_event(
                project_id, TaskEvent.DELETED, TaskDeleted(task_id=task_id)
            )
        except Exception as e:
            logger.warning("Task event broadcast failed", task_event="taskDeleted", error=str(e))
        logger.info("Task deleted", task_id=str(task_id), project_id=str(project_id))

    async def assign(self, task_id: UUID, user: User, assignee_id: UUID) -> TaskListItem:
        task = await self.get_visible(task_id, user)
        project = await self.projects.get_accessible(task.project_id, user)
        await self._check_assignee(project, assignee_id)
        try:
            previous = task.assigned_to_id
            task.assigned_to_id = assignee_id
            task.updated_at = utc_now()
            self.session.add(task)
            if previous != assignee_id:
                self._notify(
                    assignee_id,
                    user,
                    NotificationType.TASK_ASSIGNED,
                    "Task assigned",
                    f"{user.full_name} assigned you '{task.title}'",
                    task,
                )
        except Exception:
            await self._rollback()
            raise
        await self._commit()
        item = (await self.build_list_items([task]))[0]
        await self._emit(task, TaskEvent.UPDATED, item)
        return item

    async def _touch(self, task: Task, **values: object) -> TaskListItem:
        try:
            for field, value in values.items():
                setattr(task, field, value)
            task.updated_at = utc_now()
            self.session.add(task)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        item = (await self.build_list_items([task]))[0]
        await self._emit(task, TaskEvent.UPDATED, item)
        return item

    async def unassign(self, task_id: UUID, user: User) -> TaskListItem:
        task = await self.get_visible(task_id, user)
        return await self._touch(task, assigned_to_id=None)

    async def archive(self, task_id: UUID, user: User) -> TaskListItem:
        """Close the task and hide it from default listings."""
        task = await self.get_visible(task_id, user)
        return await self._touch(task, status=TaskStatus.DONE.value, archived_at=utc_now())

    # Comments

    async def list_comments(self, task_id: UUID, user: User, page: int, limit: int) -> CommentList:
        task = await self.get_visible(task_id, user)
        comments, total = await self.comment_repo.list_for_task(task.id, page, limit)
        return CommentList(
            comments=await self._comment_views(comments),
            pagination=PaginationMeta.from_counts(page, limit, total),
        )

    async def add_comment(self, task_id: UUID, user: User, content: str) -> CommentRead:
        """Comment on a task; its assignee and creator are notified (never the author)."""
        task = await self.get_visible(task_id, user)
        try:
            comment = TaskComment(task_id=task.id, user_id=user.id, content=content)
            self.comment_repo.add(comment)
            for recipient_id in dict.fromkeys([task.assigned_to_id, task.created_by_id]):
                self._notify(
                    recipient_id,
                    user,
                    NotificationType.COMMENT_ADDED,
                    "New comment",
                    f"{user.full_name} commented on '{task.title}'",
                    task,
                )
        except Exception:
            await self._rollback()
            raise
        await self._commit()
        return (await self._comment_views([comment]))[0]

    # Dependency edges

    async def list_dependencies(self, task_id: UUID, user: User) -> list[DependencyRead]:
        task = await self.get_visible(task_id, user)
        return await self._dependency_views(task.id)

    async def add_dependency(self, task_id: UUID, user: User, depends_on_id: UUID) -> DependencyRead:
        task = await self.get_visible(task_id, user)
        target = await self.get_visible(depends_on_id, user)
        if await would_create_cycle(self.dependency_repo, task.id, target.id):
            raise _circular()
        if await self.dependency_repo.get(task.id, target.id):
            raise AppError(
                "Dependency already exists",
                status.HTTP_400_BAD_REQUEST,
                "DEPENDENCY_EXISTS",
            )
        try:
            edge = TaskDependency(task_id=task.id, depends_on_id=target.id)
            self.dependency_repo.add(edge)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info("Task dependency added", task_id=str(task.id), depends_on_id=str(target.id))
        return DependencyRead(
            task_id=edge.task_id,
            depends_on_id=edge.depends_on_id,
            created_at=edge.created_at,
            depends_on=TaskSummary.model_validate(target),
        )

    async def remove_dependency(self, task_id: UUID, user: User, depends_on_id: UUID) -> None:
        task = await self.get_visible(task_id, user)
        edge = await self.dependency_repo.get(task.id, depends_on_id)
        if edge is None:
            raise AppError(
                "Dependency not found", status.HTTP_404_NOT_FOUND, "DEPENDENCY_NOT_FOUND"
            )
        try:
            await self.dependency_repo.delete(edge)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
