"""Notification inbox endpoints. Every route is scoped to the caller."""

from uuid import UUID

from fastapi import APIRouter

from src.cybertask.api.dependencies import CurrentUser, NotificationServiceDep, Pagination
from src.cybertask.schemas.common import ApiResponse
from src.cybertask.schemas.notification import NotificationList, NotificationRead, ReadAllResult

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=ApiResponse[NotificationList])
async def list_notifications(
    current_user: CurrentUser,
    service: NotificationServiceDep,
    pagination: Pagination,
    unread: bool = False,
) -> ApiResponse[NotificationList]:
    """Newest first. ``unread=true`` hides notifications already read."""
    notifications = await service.list_for_user(
        current_user.id, pagination.page, pagination.limit, unread_only=unread
    )
    return ApiResponse(message="Notifications retrieved", data=notifications)


# Declared before /{notification_id}/read so "read-all" is never parsed as an id
@router.put("/read-all", response_model=ApiResponse[ReadAllResult])
async def mark_all_read(
    current_user: CurrentUser, service: NotificationServiceDep
) -> ApiResponse[ReadAllResult]:
    count = await service.mark_all_read(current_user.id)
    return ApiResponse(message="All notifications marked as read", data=ReadAllResult(count=count))


@router.put(
    "/{notification_id}/read",
    response_model=ApiResponse[NotificationRead],
    responses={404: {"description": "NOTIFICATION_NOT_FOUND"}},
)
async def mark_read(
    notification_id: UUID, current_user: CurrentUser, service: NotificationServiceDep
) -> ApiResponse[NotificationRead]:
    notification = await service.mark_read(notification_id, current_user.id)
    return ApiResponse(
        message="Notification marked as read",
        data=NotificationRead.model_validate(notification),
    )


@router.delete(
    "/{notification_id}",
    response_model=ApiResponse[None],
    responses={404: {"description": "NOTIFICATION_NOT_FOUND"}},
)
async def delete_notification(
    notification_id: UUID, current_user: CurrentUser, service: NotificationServiceDep
) -> ApiResponse[None]:
    await service.delete(notification_id, current_user.id)
    return ApiResponse(message="Notification deleted")
