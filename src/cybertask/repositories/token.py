"""Repositories for refresh, password reset and email verification tokens."""

from typing import TypeVar
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select

from src.cybertask.models import EmailVerificationToken, PasswordResetToken, RefreshToken
from src.cybertask.models.base import utc_now
from src.cybertask.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    model = RefreshToken

    async def get_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Get refresh token by its hash."""
        result = await self.session.execute(
            select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def get_valid_by_hash(
        self, token_hash: str, for_update: bool = False
    ) -> RefreshToken | None:
        """Get a valid (non-revoked, non-expired) refresh token by hash.

        Args:
            token_hash: The hashed token to look up
            for_update: If True, locks the row so two concurrent refreshes
                       cannot both rotate the same token
        """
        query = select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked == False,  # noqa: E712
            RefreshToken.expires_at > utc_now(),
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_active_tokens_for_user(self, user_id: UUID) -> list[RefreshToken]:
        """Get all active tokens of a user.

        Used for bulk blacklisting in Redis with proper TTLs.
        """
        result = await self.session.execute(
            select(RefreshToken).where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked == False,  # noqa: E712
                RefreshToken.expires_at > utc_now(),
            )
        )
        return list(result.scalars().all())

    async def revoke_all_for_user(self, user_id: UUID) -> int:
        """Revoke all active refresh tokens for a user.

        Returns the number of tokens revoked.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id)  # type: ignore[arg-type]
            .where(RefreshToken.revoked == False)  # type: ignore[arg-type]  # noqa: E712
            .values(revoked=True)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]


TokenModel = TypeVar("TokenModel", PasswordResetToken, EmailVerificationToken)


class _SingleUseTokenRepository(BaseRepository[TokenModel]):
    """Shared queries for hashed, single-use, expiring tokens."""

    async def get_valid_by_hash(self, token_hash: str) -> TokenModel | None:
        """Get a valid (unused, non-expired) token by its hash."""
        model = self.model
        result = await self.session.execute(
            select(model).where(
                model.token_hash == token_hash,
                model.used == False,  # noqa: E712
                model.expires_at > utc_now(),
            )
        )
        return result.scalar_one_or_none()

    async def invalidate_user_tokens(self, user_id: UUID) -> None:
        """Mark all tokens for a user as used (invalidates them)."""
        model = self.model
        await self.session.execute(
            update(model)
            .where(model.user_id == user_id)  # type: ignore[arg-type]
            .where(model.used == False)  # type: ignore[arg-type]  # noqa: E712
            .values(used=True, used_at=utc_now())
        )

    def mark_used(self, token: TokenModel) -> TokenModel:
        token.used = True
        token.used_at = utc_now()
        self.session.add(token)
        return token


class PasswordResetTokenRepository(_SingleUseTokenRepository[PasswordResetToken]):
    model = PasswordResetToken


class EmailVerificationTokenRepository(_SingleUseTokenRepository[EmailVerificationToken]):
    model = EmailVerificationToken
