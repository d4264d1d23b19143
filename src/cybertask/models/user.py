"""User model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.cybertask.models.base import utc_now
from src.cybertask.models.enums import UserRole


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    username: str = Field(max_length=30, unique=True, index=True)
    hashed_password: str = Field(max_length=255)
    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    role: str = Field(default=UserRole.USER.value, max_length=20, index=True)
    is_active: bool = Field(default=True)
    email_verified: bool = Field(default=False)
    email_verified_at: datetime | None = Field(default=None)
    avatar_url: str | None = Field(default=None, max_length=500)
    bio: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, max_length=30)
    timezone: str = Field(default="UTC", max_length=64)
    last_login_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def role_enum(self) -> UserRole:
        """Get role as UserRole enum."""
        return UserRole(self.role)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
