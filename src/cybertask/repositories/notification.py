"""Repository for Notification entity."""

from uuid import UUID

from sqlalchemy import update
from sqlmodel import select

from src.cybertask.models import Notification
from src.cybertask.models.base import utc_now
from src.cybertask.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    model = Notification

    async def get_for_user(self, notification_id: UUID, user_id: UUID) -> Notification | None:
        result = await self.session.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self, user_id: UUID, page: int, limit: int, unread_only: bool = False
    ) -> tuple[list[Notification], int]:
        """Notifications newest first."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read == False)  # noqa: E712
        query = query.order_by(Notification.created_at.desc())  # type: ignore[attr-defined]
        return await self.paginate(query, page, limit)

    async def unread_count(self, user_id: UUID) -> int:
        return await self.count(
            select(Notification.id).where(
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
        )

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user as read. Returns the count."""
        result = await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id)  # type: ignore[arg-type]
            .where(Notification.is_read == False)  # type: ignore[arg-type]  # noqa: E712
            .values(is_read=True, read_at=utc_now())
        )
        return result.rowcount or 0  # type: ignore[attr-defined]
