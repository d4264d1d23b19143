"""Email verification service."""

import secrets
from datetime import timedelta

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.core.config import get_settings
from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import get_logger
from src.cybertask.core.notifications import send_verification_email
from src.cybertask.core.security import hash_token
from src.cybertask.models import EmailVerificationToken, User
from src.cybertask.models.base import utc_now
from src.cybertask.repositories import EmailVerificationTokenRepository, UserRepository

logger = get_logger(__name__)


class EmailVerificationService:
    """Service for email verification operations.

    Handles token generation, validation, and email sending.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        token_repo: EmailVerificationTokenRepository,
        session: AsyncSession,
    ):
        self.user_repo = user_repo
        self.token_repo = token_repo
        self.session = session

    async def create_and_send_verification(self, user: User) -> str:
        """Create a verification token, replacing older ones, and email it.

        Returns:
            The plaintext token (for dev/testing)
        """
        settings = get_settings()

        try:
            await self.token_repo.invalidate_user_tokens(user.id)

            token = secrets.token_urlsafe(32)
            self.token_repo.add(
                EmailVerificationToken(
                    user_id=user.id,
                    token_hash=hash_token(token),
                    expires_at=utc_now()
                    + timedelta(hours=settings.email_verification_expire_hours),
                )
            )
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error("Failed to create verification token", error=str(e))
            raise

        # Sent after commit; a failed send leaves a valid token the user can resend
        send_verification_email(user.email, token, user.first_name)
        logger.info("Verification token issued", user_id=str(user.id))
        return token

    async def verify_token(self, token: str) -> User:
        """Mark the token's user as verified.

        Raises:
            AppError: INVALID_VERIFICATION_TOKEN when unknown, used or expired.
        """
        try:
            db_token = await self.token_repo.get_valid_by_hash(hash_token(token))
            user = await self.user_repo.get_by_id(db_token.user_id) if db_token else None
            if db_token is None or user is None:
                logger.warning("Invalid or expired verification token")
                raise AppError(
                    "Invalid or expired verification token",
                    status.HTTP_400_BAD_REQUEST,
                    "INVALID_VERIFICATION_TOKEN",
                )

            if not user.email_verified:
                user.email_verified = True
                user.email_verified_at = utc_now()
                user.updated_at = utc_now()
                self.session.add(user)

            # Marked used even for already verified users to prevent reuse
            self.token_repo.mark_used(db_token)
            await self.session.commit()
            logger.info("User email verified", user_id=str(user.id))
            return user
        except Exception:
            await self.session.rollback()
            raise

    async def resend_verification(self, user: User) -> str:
        """Issue a fresh verification email for an unverified user.

        Raises:
            AppError: EMAIL_ALREADY_VERIFIED.
        """
        if user.email_verified:
            raise AppError(
                "Email is already verified",
                status.HTTP_400_BAD_REQUEST,
                "EMAIL_ALREADY_VERIFIED",
            )
        return await self.create_and_send_verification(user)
