"""In-app notifications, persisted and pushed to live sockets."""

from typing import Any
from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import get_logger
from src.cybertask.core.realtime import NOTIFICATION_EVENT, connection_manager
from src.cybertask.models import Notification, NotificationType
from src.cybertask.models.base import utc_now
from src.cybertask.repositories import NotificationRepository
from src.cybertask.schemas.common import PaginationMeta
from src.cybertask.schemas.notification import NotificationList, NotificationRead

logger = get_logger(__name__)


class NotificationService:
    """Notifications are staged inside the caller's transaction and pushed
    to sockets only once that transaction has committed.
    """

    def __init__(self, repo: NotificationRepository, session: AsyncSession):
        self.repo = repo
        self.session = session
        self._pending: list[Notification] = []

    def stage(
        self,
        user_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """Add a notification to the current transaction (no commit)."""
        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            data=data,
        )
        self.repo.add(notification)
        self._pending.append(notification)
        return notification

    async def publish(self) -> int:
        """Push staged notifications to their users' sockets. Call after commit."""
        pending, self._pending = self._pending, []
        delivered = 0
        for notification in pending:
            payload = NotificationRead.model_validate(notification)
            delivered += await connection_manager.send_to_user(
                notification.user_id, NOTIFICATION_EVENT, payload
            )
        return delivered

    def discard(self) -> None:
        """Forget staged notifications after a rollback."""
        self._pending.clear()

    async def list_for_user(
        self, user_id: UUID, page: int, limit: int, unread_only: bool = False
    ) -> NotificationList:
        items, total = await self.repo.list_for_user(user_id, page, limit, unread_only)
        return NotificationList(
            notifications=[NotificationRead.model_validate(n) for n in items],
            unread_count=await self.repo.unread_count(user_id),
            pagination=PaginationMeta.from_counts(page, limit, total),
        )

    async def _get_owned(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self.repo.get_for_user(notification_id, user_id)
        if notification is None:
            raise AppError(
                "Notification not found",
                status.HTTP_404_NOT_FOUND,
                "NOTIFICATION_NOT_FOUND",
            )
        return notification

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        try:
            notification = await self._get_owned(notification_id, user_id)
            if not notification.is_read:
                notification.is_read = True
                notification.read_at = utc_now()
                self.session.add(notification)
                await self.session.commit()
            return notification
        except Exception:
            await self.session.rollback()
            raise

    async def mark_all_read(self, user_id: UUID) -> int:
        try:
            count = await self.repo.mark_all_read(user_id)
            await self.session.commit()
            return count
        except Exception:
            await self.session.rollback()
            raise

    async def delete(self, notification_id: UUID, user_id: UUID) -> None:
        try:
            notification = await self._get_owned(notification_id, user_id)
            await self.repo.delete(notification)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
