"""User profile and user administration endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from src.cybertask.api.dependencies import (
    AdminUser,
    CurrentUser,
    ManagerUser,
    Pagination,
    UserServiceDep,
)
from src.cybertask.models import UserRole
from src.cybertask.schemas.common import ApiResponse
from src.cybertask.schemas.user import (
    ChangePasswordRequest,
    ProfileUpdate,
    RoleUpdate,
    StatusUpdate,
    UserDetail,
    UserList,
    UserRead,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=ApiResponse[UserRead])
async def get_profile(current_user: CurrentUser) -> ApiResponse[UserRead]:
    return ApiResponse(message="Profile retrieved", data=UserRead.model_validate(current_user))


@router.put("/profile", response_model=ApiResponse[UserRead])
async def update_profile(
    data: ProfileUpdate, current_user: CurrentUser, service: UserServiceDep
) -> ApiResponse[UserRead]:
    user = await service.update_profile(current_user, data)
    return ApiResponse(message="Profile updated", data=UserRead.model_validate(user))


@router.put(
    "/change-password",
    response_model=ApiResponse[None],
    responses={400: {"description": "INVALID_CURRENT_PASSWORD or SAME_PASSWORD"}},
)
async def change_password(
    data: ChangePasswordRequest, current_user: CurrentUser, service: UserServiceDep
) -> ApiResponse[None]:
    """Change password. Every session is signed out."""
    await service.change_password(current_user, data.current_password, data.new_password)
    return ApiResponse(message="Password changed successfully")


@router.get("", response_model=ApiResponse[UserList])
async def list_users(
    _: ManagerUser,
    service: UserServiceDep,
    pagination: Pagination,
    search: Annotated[str | None, Query(max_length=100)] = None,
    role: UserRole | None = None,
    is_active: bool | None = None,
) -> ApiResponse[UserList]:
    users = await service.list_users(
        pagination.page, pagination.limit, search=search, role=role, is_active=is_active
    )
    return ApiResponse(message="Users retrieved", data=users)


@router.get("/{user_id}", response_model=ApiResponse[UserDetail])
async def get_user(user_id: UUID, _: ManagerUser, service: UserServiceDep) -> ApiResponse[UserDetail]:
    return ApiResponse(message="User retrieved", data=await service.get_user_detail(user_id))


@router.patch(
    "/{user_id}/role",
    response_model=ApiResponse[UserRead],
    responses={
        400: {"description": "CANNOT_CHANGE_OWN_ROLE"},
        403: {"description": "Only SUPER_ADMIN can grant or revoke admin roles"},
    },
)
async def change_role(
    user_id: UUID, data: RoleUpdate, current_user: AdminUser, service: UserServiceDep
) -> ApiResponse[UserRead]:
    user = await service.change_role(current_user, user_id, data.role)
    return ApiResponse(message="User role updated", data=UserRead.model_validate(user))


@router.patch("/{user_id}/status", response_model=ApiResponse[UserRead])
async def change_status(
    user_id: UUID, data: StatusUpdate, current_user: AdminUser, service: UserServiceDep
) -> ApiResponse[UserRead]:
    user = await service.set_status(current_user, user_id, data.is_active)
    message = "User activated" if data.is_active else "User deactivated"
    return ApiResponse(message=message, data=UserRead.model_validate(user))


@router.delete("/{user_id}", response_model=ApiResponse[None])
async def delete_user(
    user_id: UUID, current_user: AdminUser, service: UserServiceDep
) -> ApiResponse[None]:
    """Delete a user. Their projects, tasks and comments pass to the caller."""
    await service.delete_user(current_user, user_id)
    return ApiResponse(message="User deleted successfully")
