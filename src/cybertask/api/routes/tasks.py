"""Task, comment and dependency endpoints."""

from datetime import date, datetime, time, timedelta
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.cybertask.api.dependencies import CurrentUser, Pagination, TaskServiceDep
from src.cybertask.core.exceptions import AppError
from src.cybertask.models import Priority, TaskStatus, User
from src.cybertask.repositories import TaskFilters
from src.cybertask.schemas.common import ApiResponse
from src.cybertask.schemas.task import (
    AssignRequest,
    CommentCreate,
    CommentList,
    CommentRead,
    DependencyCreate,
    DependencyRead,
    TaskCreate,
    TaskDetail,
    TaskList,
    TaskListItem,
    TaskUpdate,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _assignee_filter(filters: TaskFilters, assigned_to: str | None, user: User) -> None:
    """``me``, ``unassigned`` or a user id."""
    if not assigned_to:
        return
    if assigned_to == "me":
        filters.assigned_to = user.id
    elif assigned_to == "unassigned":
        filters.unassigned = True
    else:
        try:
            filters.assigned_to = UUID(assigned_to)
        except ValueError:
            raise AppError(
                "assigned_to must be 'me', 'unassigned' or a user id",
                status.HTTP_400_BAD_REQUEST,
                "VALIDATION_ERROR",
            ) from None


@router.post(
    "",
    response_model=ApiResponse[TaskListItem],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "USER_NOT_PROJECT_MEMBER or INVALID_DEPENDENCY"},
        404: {"description": "PROJECT_NOT_FOUND"},
    },
)
async def create_task(
    data: TaskCreate, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[TaskListItem]:
    """Create a task. Broadcasts ``taskCreated`` to the project room."""
    task = await service.create(current_user, data)
    return ApiResponse(message="Task created successfully", data=task)


@router.get("", response_model=ApiResponse[TaskList])
async def list_tasks(
    current_user: CurrentUser,
    service: TaskServiceDep,
    pagination: Pagination,
    search: Annotated[str | None, Query(max_length=100)] = None,
    status: TaskStatus | None = None,
    priority: Priority | None = None,
    assigned_to: Annotated[str | None, Query(description="'me', 'unassigned' or a user id")] = None,
    project_id: UUID | None = None,
    due_date: Annotated[date | None, Query(description="Tasks due on this UTC day")] = None,
    include_archived: bool = False,
) -> ApiResponse[TaskList]:
    """Tasks in projects the caller owns or has joined.

    Ordered by priority (highest first), then due date (soonest first, undated
    last), then newest.
    """
    filters = TaskFilters(
        search=search,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        project_id=project_id,
        include_archived=include_archived,
    )
    _assignee_filter(filters, assigned_to, current_user)
    if due_date:
        filters.due_from = datetime.combine(due_date, time.min)
        filters.due_before = filters.due_from + timedelta(days=1)

    tasks = await service.list_tasks(current_user, filters, pagination.page, pagination.limit)
    return ApiResponse(message="Tasks retrieved", data=tasks)


@router.get("/{task_id}", response_model=ApiResponse[TaskDetail])
async def get_task(
    task_id: UUID, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[TaskDetail]:
    return ApiResponse(message="Task retrieved", data=await service.get_detail(task_id, current_user))


@router.put(
    "/{task_id}",
    response_model=ApiResponse[TaskListItem],
    responses={400: {"description": "CIRCULAR_DEPENDENCY, INVALID_DEPENDENCY or USER_NOT_PROJECT_MEMBER"}},
)
async def update_task(
    task_id: UUID, data: TaskUpdate, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[TaskListItem]:
    """Partial update. Broadcasts ``taskUpdated``."""
    task = await service.update(task_id, current_user, data)
    return ApiResponse(message="Task updated successfully", data=task)


@router.delete(
    "/{task_id}",
    response_model=ApiResponse[None],
    responses={400: {"description": "TASK_HAS_DEPENDENCIES"}},
)
async def delete_task(
    task_id: UUID, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[None]:
    """Delete a task with its comments and outgoing dependencies. Broadcasts ``taskDeleted``."""
    await service.delete(task_id, current_user)
    return ApiResponse(message="Task deleted successfully")


@router.post("/{task_id}/assign", response_model=ApiResponse[TaskListItem])
async def assign_task(
    task_id: UUID, data: AssignRequest, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[TaskListItem]:
    task = await service.assign(task_id, current_user, data.user_id)
    return ApiResponse(message="Task assigned successfully", data=task)


@router.post("/{task_id}/unassign", response_model=ApiResponse[TaskListItem])
async def unassign_task(
    task_id: UUID, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[TaskListItem]:
    task = await service.unassign(task_id, current_user)
    return ApiResponse(message="Task unassigned successfully", data=task)


@router.post("/{task_id}/archive", response_model=ApiResponse[TaskListItem])
async def archive_task(
    task_id: UUID, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[TaskListItem]:
    task = await service.archive(task_id, current_user)
    return ApiResponse(message="Task archived successfully", data=task)


@router.get("/{task_id}/comments", response_model=ApiResponse[CommentList])
async def list_comments(
    task_id: UUID, current_user: CurrentUser, service: TaskServiceDep, pagination: Pagination
) -> ApiResponse[CommentList]:
    comments = await service.list_comments(
        task_id, current_user, pagination.page, pagination.limit
    )
    return ApiResponse(message="Comments retrieved", data=comments)


@router.post(
    "/{task_id}/comments",
    response_model=ApiResponse[CommentRead],
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    task_id: UUID, data: CommentCreate, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[CommentRead]:
    comment = await service.add_comment(task_id, current_user, data.content)
    return ApiResponse(message="Comment added successfully", data=comment)


@router.get("/{task_id}/dependencies", response_model=ApiResponse[list[DependencyRead]])
async def list_dependencies(
    task_id: UUID, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[list[DependencyRead]]:
    dependencies = await service.list_dependencies(task_id, current_user)
    return ApiResponse(message="Dependencies retrieved", data=dependencies)


@router.post(
    "/{task_id}/dependencies",
    response_model=ApiResponse[DependencyRead],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "CIRCULAR_DEPENDENCY or DEPENDENCY_EXISTS"},
        404: {"description": "TASK_NOT_FOUND"},
    },
)
async def add_dependency(
    task_id: UUID, data: DependencyCreate, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[DependencyRead]:
    """Make the task wait on ``depends_on_id``. Rejected if it would close a cycle."""
    dependency = await service.add_dependency(task_id, current_user, data.depends_on_id)
    return ApiResponse(message="Dependency added successfully", data=dependency)


@router.delete(
    "/{task_id}/dependencies/{depends_on_id}",
    response_model=ApiResponse[None],
    responses={404: {"description": "DEPENDENCY_NOT_FOUND"}},
)
async def remove_dependency(
    task_id: UUID, depends_on_id: UUID, current_user: CurrentUser, service: TaskServiceDep
) -> ApiResponse[None]:
    await service.remove_dependency(task_id, current_user, depends_on_id)
    return ApiResponse(message="Dependency removed successfully")
