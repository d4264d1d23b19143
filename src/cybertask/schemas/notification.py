from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from src.cybertask.models import NotificationType
from src.cybertask.schemas.common import PaginationMeta


class NotificationRead(BaseModel):
    id: UUID
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationList(BaseModel):
    notifications: list[NotificationRead]
    unread_count: int
    pagination: PaginationMeta


class ReadAllResult(BaseModel):
    count: int
