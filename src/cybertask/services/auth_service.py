"""Authentication service - registration, login, token refresh and logout."""

import hmac
from uuid import UUID

from fastapi import status
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cybertask.core.cache import blacklist_token, blacklist_tokens, is_token_blacklisted
from src.cybertask.core.config import get_settings
from src.cybertask.core.exceptions import AppError
from src.cybertask.core.logging import get_logger
from src.cybertask.core.security import (
    DUMMY_PASSWORD_HASH,
    TokenType,
    create_access_token,
    create_refresh_token,
    hash_password,
    hash_token,
    read_token,
    verify_password,
)
from src.cybertask.models import RefreshToken, User, UserRole
from src.cybertask.models.base import utc_now
from src.cybertask.repositories import RefreshTokenRepository, UserRepository
from src.cybertask.schemas.auth import RegisterRequest, TokenPair

logger = get_logger(__name__)


def _remaining_seconds(token: RefreshToken) -> int:
    return int((token.expires_at - utc_now()).total_seconds())


async def blacklist_revoked(tokens: list[RefreshToken]) -> None:
    """Push revoked tokens to the Redis blacklist after commit.

    Redis is just a cache; DB remains authoritative, so failures are logged only.
    """
    if not tokens:
        return
    try:
        await blacklist_tokens([(t.token_hash, _remaining_seconds(t)) for t in tokens])
    except Exception as e:
        logger.warning(
            "Failed to blacklist tokens in Redis", error=str(e), token_count=len(tokens)
        )


class AuthService:
    """Handles credentials and the refresh token lifecycle.

    Refresh tokens are stored hashed and rotated on every use: the old row
    is revoked and a new one inserted in the same transaction.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        token_repo: RefreshTokenRepository,
        session: AsyncSession,
    ):
        self.user_repo = user_repo
        self.token_repo = token_repo
        self.session = session

    def _issue_tokens(self, user: User, remember_me: bool = False) -> TokenPair:
        """Create an access/refresh pair and stage the refresh row (no commit)."""
        settings = get_settings()
        access_token = create_access_token(user.id, user.email, user.role)
        refresh_token, expires_at = create_refresh_token(user.id, remember_me=remember_me)
        self.token_repo.add(
            RefreshToken(
                user_id=user.id,
                token_hash=hash_token(refresh_token),
                expires_at=expires_at,
            )
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.access_token_expire_minutes * 60,
        )

    async def register(self, data: RegisterRequest) -> tuple[User, TokenPair]:
        """Create a USER account and sign it in."""
        try:
            if await self.user_repo.get_by_email(data.email):
                raise AppError(
                    "User with this email already exists",
                    status.HTTP_409_CONFLICT,
                    "USER_EXISTS",
                )
            if await self.user_repo.get_by_username(data.username):
                raise AppError(
                    "Username is already taken", status.HTTP_409_CONFLICT, "USERNAME_EXISTS"
                )

            user = User(
                email=data.email,
                username=data.username,
                hashed_password=hash_password(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                role=UserRole.USER.value,
            )
            self.user_repo.add(user)
            await self.session.flush()

            tokens = self._issue_tokens(user)
            await self.session.commit()
            logger.info("User registered", user_id=str(user.id))
            return user, tokens
        except Exception:
            await self.session.rollback()
            raise

    async def authenticate(
        self, email: str, password: str, remember_me: bool = False
    ) -> tuple[User, TokenPair]:
        """Verify credentials and issue tokens.

        Raises:
            AppError: INVALID_CREDENTIALS or ACCOUNT_DEACTIVATED (401).
        """
        try:
            user = await self.user_repo.get_by_email(email)

            # Always verify against some hash so response time doesn't reveal
            # whether the email exists
            password_hash = user.hashed_password if user else DUMMY_PASSWORD_HASH
            password_valid = verify_password(password, password_hash)

            if user is None or not password_valid:
                raise AppError(
                    "Invalid email or password",
                    status.HTTP_401_UNAUTHORIZED,
                    "INVALID_CREDENTIALS",
                )
            if not user.is_active:
                raise AppError(
                    "Account is deactivated",
                    status.HTTP_401_UNAUTHORIZED,
                    "ACCOUNT_DEACTIVATED",
                )

            user.last_login_at = utc_now()
            self.session.add(user)
            tokens = self._issue_tokens(user, remember_me=remember_me)
            await self.session.commit()
            logger.info("User logged in", user_id=str(user.id), remember_me=remember_me)
            return user, tokens
        except Exception:
            await self.session.rollback()
            raise

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token.

        The new refresh token keeps the lifetime class (remember-me or not) of
        the one it replaces. The old hash is blacklisted in Redis after commit.
        """
        invalid = AppError(
            "Invalid refresh token", status.HTTP_401_UNAUTHORIZED, "INVALID_REFRESH_TOKEN"
        )
        try:
            payload = read_token(refresh_token)
        except ExpiredSignatureError:
            raise AppError(
                "Refresh token expired", status.HTTP_401_UNAUTHORIZED, "REFRESH_TOKEN_EXPIRED"
            ) from None
        except JWTError:
            raise invalid from None

        if payload.get("type") != TokenType.REFRESH or not payload.get("sub"):
            raise invalid

        token_hash = hash_token(refresh_token)

        # Fast path: a True here means definitely revoked; None means Redis is down
        if await is_token_blacklisted(token_hash) is True:
            raise invalid

        try:
            # FOR UPDATE so parallel refreshes with the same token cannot both rotate it
            db_token = await self.token_repo.get_valid_by_hash(token_hash, for_update=True)
            if db_token is None or not hmac.compare_digest(token_hash, db_token.token_hash):
                raise invalid

            user = await self.user_repo.get_by_id(db_token.user_id)
            if user is None or not user.is_active:
                raise invalid

            db_token.revoked = True
            self.session.add(db_token)
            tokens = self._issue_tokens(user, remember_me=bool(payload.get("remember_me")))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        try:
            await blacklist_token(token_hash, _remaining_seconds(db_token))
        except Exception as e:
            logger.warning("Failed to blacklist token in Redis", error=str(e))

        logger.info("Refresh token rotated", user_id=str(user.id))
        return tokens

    async def revoke_refresh_token(self, refresh_token: str, user_id: UUID) -> bool:
        """Revoke one refresh token owned by ``user_id``. Returns True if revoked."""
        try:
            token_hash = hash_token(refresh_token)
            db_token = await self.token_repo.get_by_hash(token_hash)
            if db_token is None or db_token.user_id != user_id or db_token.revoked:
                return False

            db_token.revoked = True
            self.session.add(db_token)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await blacklist_revoked([db_token])
        return True

    async def revoke_all_tokens_for_user(self, user_id: UUID) -> int:
        """Revoke every active refresh token of a user. Returns the number revoked."""
        try:
            active = await self.token_repo.get_active_tokens_for_user(user_id)
            count = await self.token_repo.revoke_all_for_user(user_id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await blacklist_revoked(active)
        return count

    async def logout(self, user_id: UUID, refresh_token: str | None = None) -> int:
        """Sign out one session, or every session when no token is given."""
        if refresh_token:
            revoked = await self.revoke_refresh_token(refresh_token, user_id)
            logger.info("User logged out", user_id=str(user_id), sessions=int(revoked))
            return int(revoked)
        count = await self.revoke_all_tokens_for_user(user_id)
        logger.info("User logged out everywhere", user_id=str(user_id), sessions=count)
        return count
