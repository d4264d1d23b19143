"""Project and membership endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.cybertask.api.dependencies import (
    CurrentUser,
    Pagination,
    ProjectServiceDep,
    TaskServiceDep,
)
from src.cybertask.models import Priority, ProjectStatus, TaskStatus
from src.cybertask.repositories import TaskFilters
from src.cybertask.schemas.common import ApiResponse
from src.cybertask.schemas.project import (
    MemberAdd,
    MemberRead,
    ProjectCreate,
    ProjectDetail,
    ProjectList,
    ProjectUpdate,
)
from src.cybertask.schemas.task import TaskList

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=ApiResponse[ProjectDetail], status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate, current_user: CurrentUser, service: ProjectServiceDep
) -> ApiResponse[ProjectDetail]:
    """Create a project owned by the caller."""
    project = await service.create(current_user, data)
    return ApiResponse(message="Project created successfully", data=project)


@router.get("", response_model=ApiResponse[ProjectList])
async def list_projects(
    current_user: CurrentUser,
    service: ProjectServiceDep,
    pagination: Pagination,
    search: Annotated[str | None, Query(max_length=100)] = None,
    status: ProjectStatus | None = None,
    priority: Priority | None = None,
) -> ApiResponse[ProjectList]:
    """Projects the caller owns or has joined."""
    projects = await service.list_projects(
        current_user,
        pagination.page,
        pagination.limit,
        search=search,
        status=status.value if status else None,
        priority=priority.value if priority else None,
    )
    return ApiResponse(message="Projects retrieved", data=projects)


@router.get("/{project_id}", response_model=ApiResponse[ProjectDetail])
async def get_project(
    project_id: UUID, current_user: CurrentUser, service: ProjectServiceDep
) -> ApiResponse[ProjectDetail]:
    return ApiResponse(
        message="Project retrieved", data=await service.get_detail(project_id, current_user)
    )


@router.put(
    "/{project_id}",
    response_model=ApiResponse[ProjectDetail],
    responses={403: {"description": "OWNER_REQUIRED"}},
)
async def update_project(
    project_id: UUID, data: ProjectUpdate, current_user: CurrentUser, service: ProjectServiceDep
) -> ApiResponse[ProjectDetail]:
    project = await service.update(project_id, current_user, data)
    return ApiResponse(message="Project updated successfully", data=project)


@router.delete(
    "/{project_id}",
    response_model=ApiResponse[None],
    responses={400: {"description": "PROJECT_HAS_TASKS"}, 403: {"description": "OWNER_REQUIRED"}},
)
async def delete_project(
    project_id: UUID, current_user: CurrentUser, service: ProjectServiceDep
) -> ApiResponse[None]:
    await service.delete(project_id, current_user)
    return ApiResponse(message="Project deleted successfully")


@router.get("/{project_id}/members", response_model=ApiResponse[list[MemberRead]])
async def list_members(
    project_id: UUID, current_user: CurrentUser, service: ProjectServiceDep
) -> ApiResponse[list[MemberRead]]:
    members = await service.list_members(project_id, current_user)
    return ApiResponse(message="Project members retrieved", data=members)


@router.post(
    "/{project_id}/members",
    response_model=ApiResponse[MemberRead],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "ALREADY_MEMBER"}, 404: {"description": "USER_NOT_FOUND"}},
)
async def add_member(
    project_id: UUID, data: MemberAdd, current_user: CurrentUser, service: ProjectServiceDep
) -> ApiResponse[MemberRead]:
    member = await service.add_member(project_id, current_user, data)
    return ApiResponse(message="Member added successfully", data=member)


@router.delete(
    "/{project_id}/members/{user_id}",
    response_model=ApiResponse[None],
    responses={400: {"description": "CANNOT_REMOVE_OWNER"}, 404: {"description": "NOT_A_MEMBER"}},
)
async def remove_member(
    project_id: UUID, user_id: UUID, current_user: CurrentUser, service: ProjectServiceDep
) -> ApiResponse[None]:
    await service.remove_member(project_id, current_user, user_id)
    return ApiResponse(message="Member removed successfully")


@router.get("/{project_id}/tasks", response_model=ApiResponse[TaskList])
async def list_project_tasks(
    project_id: UUID,
    current_user: CurrentUser,
    service: TaskServiceDep,
    pagination: Pagination,
    status: TaskStatus | None = None,
    priority: Priority | None = None,
    assigned_to: UUID | None = None,
    include_archived: bool = False,
) -> ApiResponse[TaskList]:
    filters = TaskFilters(
        status=status.value if status else None,
        priority=priority.value if priority else None,
        assigned_to=assigned_to,
        include_archived=include_archived,
    )
    tasks = await service.list_project_tasks(
        project_id, current_user, filters, pagination.page, pagination.limit
    )
    return ApiResponse(message="Project tasks retrieved", data=tasks)
