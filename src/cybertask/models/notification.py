"""In-app notification model."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column, Index
from sqlmodel import Field, SQLModel

from src.cybertask.models.base import JSONType, utc_now


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_read", "user_id", "is_read"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    type: str = Field(max_length=30)  # NotificationType value
    title: str = Field(max_length=200)
    message: str = Field(max_length=1000)
    data: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONType, nullable=True))
    is_read: bool = Field(default=False)
    read_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, index=True)
