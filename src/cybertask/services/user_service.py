"""User profile and user administration."""

from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import get_logger
from src.cybertask.core.security import hash_password, verify_password
from src.cybertask.models import PRIVILEGED_ROLES, RefreshToken, User, UserRole
from src.cybertask.models.base import utc_now
from src.cybertask.repositories import RefreshTokenRepository, UserRepository
from src.cybertask.schemas.common import PaginationMeta
from src.cybertask.schemas.user import ProfileUpdate, UserDetail, UserList, UserRead
from src.cybertask.services.auth_service import blacklist_revoked

logger = get_logger(__name__)


def _insufficient() -> AppError:
    return AppError(
        "Insufficient permissions", status.HTTP_403_FORBIDDEN, "INSUFFICIENT_PERMISSIONS"
    )


class UserService:
    def __init__(
        self,
        user_repo: UserRepository,
        token_repo: RefreshTokenRepository,
        session: AsyncSession,
    ):
        self.user_repo = user_repo
        self.token_repo = token_repo
        self.session = session

    async def _get_or_404(self, user_id: UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise AppError("User not found", status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND")
        return user

    async def _revoke_sessions(self, user_id: UUID) -> list[RefreshToken]:
        """Revoke a user's refresh tokens inside the current transaction."""
        active = await self.token_repo.get_active_tokens_for_user(user_id)
        await self.token_repo.revoke_all_for_user(user_id)
        return active

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        try:
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(user, field, value)
            user.updated_at = utc_now()
            self.session.add(user)
            await self.session.commit()
            return user
        except Exception:
            await self.session.rollback()
            raise

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """Replace the password and sign out every session."""
        if not verify_password(current_password, user.hashed_password):
            raise AppError(
                "Current password is incorrect",
                status.HTTP_400_BAD_REQUEST,
                "INVALID_CURRENT_PASSWORD",
            )
        if verify_password(new_password, user.hashed_password):
            raise AppError(
                "New password must differ from the current password",
                status.HTTP_400_BAD_REQUEST,
                "SAME_PASSWORD",
            )
        try:
            user.hashed_password = hash_password(new_password)
            user.updated_at = utc_now()
            self.session.add(user)
            revoked = await self._revoke_sessions(user.id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await blacklist_revoked(revoked)
        logger.info("Password changed", user_id=str(user.id))

    async def list_users(
        self,
        page: int,
        limit: int,
        search: str | None = None,
        role: UserRole | None = None,
        is_active: bool | None = None,
    ) -> UserList:
        users, total = await self.user_repo.list_filtered(
            page, limit, search=search, role=role.value if role else None, is_active=is_active
        )
        return UserList(
            users=[UserRead.model_validate(u) for u in users],
            pagination=PaginationMeta.from_counts(page, limit, total),
        )

    async def get_user_detail(self, user_id: UUID) -> UserDetail:
        user = await self._get_or_404(user_id)
        return UserDetail(
            **UserRead.model_validate(user).model_dump(),
            owned_project_count=await self.user_repo.count_owned_projects(user.id),
            assigned_task_count=await self.user_repo.count_assigned_tasks(user.id),
        )

    async def change_role(self, actor: User, user_id: UUID, role: UserRole) -> User:
        """Only SUPER_ADMIN may grant or take away ADMIN and SUPER_ADMIN."""
        if actor.id == user_id:
            raise AppError(
                "You cannot change your own role",
                status.HTTP_400_BAD_REQUEST,
                "CANNOT_CHANGE_OWN_ROLE",
            )
        target = await self._get_or_404(user_id)
        touches_privileged = role in PRIVILEGED_ROLES or target.role_enum in PRIVILEGED_ROLES
        if touches_privileged and actor.role_enum != UserRole.SUPER_ADMIN:
            raise _insufficient()

        try:
            previous = target.role
            target.role = role.value
            target.updated_at = utc_now()
            self.session.add(target)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(
            "User role changed",
            target_user_id=str(target.id),
            previous_role=previous,
            new_role=role.value,
        )
        return target

    async def set_status(self, actor: User, user_id: UUID, is_active: bool) -> User:
        """Activate or deactivate an account. Deactivation signs the user out."""
        if actor.id == user_id and not is_active:
            raise AppError(
                "You cannot deactivate your own account",
                status.HTTP_400_BAD_REQUEST,
                "CANNOT_DEACTIVATE_SELF",
            )
        target = await self._get_or_404(user_id)
        revoked: list[RefreshToken] = []
        try:
            target.is_active = is_active
            target.updated_at = utc_now()
            self.session.add(target)
            if not is_active:
                revoked = await self._revoke_sessions(target.id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await blacklist_revoked(revoked)
        logger.info("User status changed", target_user_id=str(target.id), is_active=is_active)
        return target

    async def delete_user(self, actor: User, user_id: UUID) -> None:
        """Delete a user, handing their projects, tasks and comments to ``actor``."""
        if actor.id == user_id:
            raise AppError(
                "You cannot delete your own account",
                status.HTTP_400_BAD_REQUEST,
                "CANNOT_DELETE_SELF",
            )
        target = await self._get_or_404(user_id)
        if target.role_enum in PRIVILEGED_ROLES and actor.role_enum != UserRole.SUPER_ADMIN:
            raise _insufficient()

        try:
            revoked = await self.token_repo.get_active_tokens_for_user(target.id)
            await self.user_repo.transfer_and_delete(target, successor_id=actor.id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await blacklist_revoked(revoked)
        logger.info("User deleted", target_user_id=str(user_id), successor_id=str(actor.id))
