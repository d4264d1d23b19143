"""Forgotten-password flow: reset tokens and password replacement."""

import secrets
from datetime import timedelta

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.core.config import get_settings
from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import get_logger
from src.cybertask.core.notifications import send_password_reset_email
from src.cybertask.core.security import hash_password, hash_token
from src.cybertask.models import PasswordResetToken
from src.cybertask.models.base import utc_now
from src.cybertask.repositories import (
    PasswordResetTokenRepository,
    RefreshTokenRepository,
    UserRepository,
)
from src.cybertask.services.auth_service import blacklist_revoked

logger = get_logger(__name__)


class PasswordResetService:
    def __init__(
        self,
        user_repo: UserRepository,
        reset_repo: PasswordResetTokenRepository,
        refresh_repo: RefreshTokenRepository,
        session: AsyncSession,
    ):
        self.user_repo = user_repo
        self.reset_repo = reset_repo
        self.refresh_repo = refresh_repo
        self.session = session

    async def request_reset(self, email: str) -> str | None:
        """Email a reset link when an active account exists.

        Callers always answer success, so the response never reveals whether
        the email is registered.

        Returns:
            The plaintext token (for dev/testing), or None if nothing was sent
        """
        settings = get_settings()
        user = await self.user_repo.get_by_email(email)
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return None

        try:
            await self.reset_repo.invalidate_user_tokens(user.id)
            token = secrets.token_urlsafe(32)
            self.reset_repo.add(
                PasswordResetToken(
                    user_id=user.id,
                    token_hash=hash_token(token),
                    expires_at=utc_now() + timedelta(minutes=settings.password_reset_expire_minutes),
                )
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        send_password_reset_email(user.email, token, user.first_name)
        logger.info("Password reset token issued", user_id=str(user.id))
        return token

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password and sign the user out everywhere.

        Raises:
            AppError: INVALID_RESET_TOKEN when unknown, used or expired.
        """
        try:
            db_token = await self.reset_repo.get_valid_by_hash(hash_token(token))
            user = await self.user_repo.get_by_id(db_token.user_id) if db_token else None
            if db_token is None or user is None:
                raise AppError(
                    "Invalid or expired reset token",
                    status.HTTP_400_BAD_REQUEST,
                    "INVALID_RESET_TOKEN",
                )

            user.hashed_password = hash_password(new_password)
            user.updated_at = utc_now()
            self.session.add(user)
            self.reset_repo.mark_used(db_token)

            active = await self.refresh_repo.get_active_tokens_for_user(user.id)
            await self.refresh_repo.revoke_all_for_user(user.id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await blacklist_revoked(active)
        logger.info("Password reset completed", user_id=str(user.id))
