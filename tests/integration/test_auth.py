"""Tests for authentication endpoints."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from httpx import AsyncClient
from jose import jwt
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.cybertask.core.config import get_settings
from src.cybertask.core.security import create_access_token, hash_token
from src.cybertask.models import RefreshToken, User
from tests.factories import DEFAULT_TEST_PASSWORD, EmailVerificationTokenFactory
from tests.helpers import NEW_PASSWORD, auth_headers, create_user

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


def register_payload(**overrides) -> dict:
    payload = {
        "email": "grace@example.com",
        "username": "grace_h",
        "first_name": "Grace",
        "last_name": "Hopper",
        "password": NEW_PASSWORD,
    }
    payload.update(overrides)
    return payload


async def login(client: AsyncClient, email: str, password: str = DEFAULT_TEST_PASSWORD, **extra):
    return await client.post(
        "/api/auth/login", json={"email": email, "password": password, **extra}
    )


class TestRegistration:
    async def test_register_returns_user_and_tokens(self, client: AsyncClient) -> None:
        with patch(
            "src.cybertask.services.email_verification_service.send_verification_email"
        ) as send:
            response = await client.post("/api/auth/register", json=register_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        user = body["data"]["user"]
        assert user["email"] == "grace@example.com"
        assert user["role"] == "USER"
        assert user["email_verified"] is False
        assert "hashed_password" not in user
        tokens = body["data"]["tokens"]
        assert tokens["token_type"] == "bearer"
        assert tokens["access_token"] and tokens["refresh_token"]
        send.assert_called_once()
        assert send.call_args.args[0] == "grace@example.com"

    async def test_register_duplicate_email(self, client: AsyncClient, user: User) -> None:
        response = await client.post(
            "/api/auth/register", json=register_payload(email=user.email.upper())
        )

        assert response.status_code == 409
        assert response.json()["error"] == "USER_EXISTS"

    async def test_register_duplicate_username(self, client: AsyncClient, user: User) -> None:
        response = await client.post(
            "/api/auth/register", json=register_payload(username=user.username)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "USERNAME_EXISTS"

    async def test_register_weak_password(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/auth/register", json=register_payload(password="Password1!")
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "password"


class TestLogin:
    async def test_login_success(self, client: AsyncClient, user: User) -> None:
        response = await login(client, user.email)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == str(user.id)
        assert data["user"]["last_login_at"] is not None
        assert data["tokens"]["expires_in"] == 15 * 60

    async def test_wrong_password_and_unknown_email_look_the_same(
        self, client: AsyncClient, user: User
    ) -> None:
        wrong_password = await login(client, user.email, "Not-The-Password-1!")
        unknown_email = await login(client, "nobody@example.com")

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json()["error"] == unknown_email.json()["error"]
        assert wrong_password.json()["error"] == "INVALID_CREDENTIALS"

    async def test_login_deactivated_account(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        inactive = await create_user(db_session, is_active=False)

        response = await login(client, inactive.email)

        assert response.status_code == 401
        assert response.json()["error"] == "ACCOUNT_DEACTIVATED"

    async def test_me(self, client: AsyncClient, user: User, user_headers: dict) -> None:
        response = await client.get("/api/auth/me", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["data"]["username"] == user.username


class TestAccessToken:
    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "NO_TOKEN"

    async def test_malformed_token(self, client: AsyncClient) -> None:
        response = await client.get(
            "/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    async def test_expired_token(self, client: AsyncClient, user: User) -> None:
        token = create_access_token(user.id, user.email, user.role, timedelta(seconds=-1))

        response = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "TOKEN_EXPIRED"

    async def test_refresh_token_is_not_an_access_token(
        self, client: AsyncClient, user: User
    ) -> None:
        tokens = (await login(client, user.email)).json()["data"]["tokens"]

        response = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    async def test_deactivated_user_token_is_rejected(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        inactive = await create_user(db_session, is_active=False)

        response = await client.get("/api/auth/me", headers=auth_headers(inactive))

        assert response.status_code == 401
        assert response.json()["error"] == "ACCOUNT_DEACTIVATED"


class TestRefresh:
    async def test_refresh_rotates_token(self, client: AsyncClient, user: User) -> None:
        old = (await login(client, user.email)).json()["data"]["tokens"]["refresh_token"]

        response = await client.post("/api/auth/refresh", json={"refresh_token": old})

        assert response.status_code == 200
        new = response.json()["data"]["tokens"]
        assert new["refresh_token"] != old

        replay = await client.post("/api/auth/refresh", json={"refresh_token": old})
        assert replay.status_code == 401
        assert replay.json()["error"] == "INVALID_REFRESH_TOKEN"

        again = await client.post(
            "/api/auth/refresh", json={"refresh_token": new["refresh_token"]}
        )
        assert again.status_code == 200

    async def test_refresh_with_redis_blacklists_old_token(
        self, client: AsyncClient, user: User, mock_redis: Redis
    ) -> None:
        old = (await login(client, user.email)).json()["data"]["tokens"]["refresh_token"]

        await client.post("/api/auth/refresh", json={"refresh_token": old})

        keys = await mock_redis.keys("cybertask:revoked_refresh:*")
        assert keys == [f"cybertask:revoked_refresh:{hash_token(old)}"]

    async def test_refresh_rejects_access_token(self, client: AsyncClient, user: User) -> None:
        access = (await login(client, user.email)).json()["data"]["tokens"]["access_token"]

        response = await client.post("/api/auth/refresh", json={"refresh_token": access})

        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_REFRESH_TOKEN"

    async def test_refresh_rejects_expired_token(self, client: AsyncClient, user: User) -> None:
        settings = get_settings()
        expired = jwt.encode(
            {
                "sub": str(user.id),
                "type": "refresh",
                "iss": settings.jwt_issuer,
                "aud": settings.jwt_audience,
                "exp": datetime.now(UTC) - timedelta(minutes=1),
            },
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        response = await client.post("/api/auth/refresh", json={"refresh_token": expired})

        assert response.status_code == 401
        assert response.json()["error"] == "REFRESH_TOKEN_EXPIRED"

    async def test_remember_me_survives_rotation(
        self, client: AsyncClient, user: User, db_session: AsyncSession
    ) -> None:
        tokens = (await login(client, user.email, remember_me=True)).json()["data"]["tokens"]
        rotated = (
            await client.post(
                "/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
            )
        ).json()["data"]["tokens"]

        result = await db_session.execute(
            select(RefreshToken).where(
                RefreshToken.token_hash == hash_token(rotated["refresh_token"])
            )
        )
        row = result.scalar_one()
        # Remember-me tokens live 30 days instead of 7
        assert (row.expires_at - row.created_at).days >= 29


class TestLogout:
    async def test_logout_single_session(self, client: AsyncClient, user: User) -> None:
        first = (await login(client, user.email)).json()["data"]["tokens"]
        second = (await login(client, user.email)).json()["data"]["tokens"]

        response = await client.post(
            "/api/auth/logout",
            json={"refresh_token": first["refresh_token"]},
            headers={"Authorization": f"Bearer {first['access_token']}"},
        )

        assert response.status_code == 200
        revoked = await client.post(
            "/api/auth/refresh", json={"refresh_token": first["refresh_token"]}
        )
        assert revoked.status_code == 401
        still_valid = await client.post(
            "/api/auth/refresh", json={"refresh_token": second["refresh_token"]}
        )
        assert still_valid.status_code == 200

    async def test_logout_everywhere(self, client: AsyncClient, user: User) -> None:
        first = (await login(client, user.email)).json()["data"]["tokens"]
        second = (await login(client, user.email)).json()["data"]["tokens"]

        response = await client.post(
            "/api/auth/logout", headers={"Authorization": f"Bearer {first['access_token']}"}
        )

        assert response.status_code == 200
        for tokens in (first, second):
            refreshed = await client.post(
                "/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
            )
            assert refreshed.status_code == 401


class TestPasswordReset:
    async def test_full_reset_flow(self, client: AsyncClient, user: User) -> None:
        session_tokens = (await login(client, user.email)).json()["data"]["tokens"]

        with patch(
            "src.cybertask.services.password_reset_service.send_password_reset_email"
        ) as send:
            response = await client.post(
                "/api/auth/forgot-password", json={"email": user.email}
            )
        assert response.status_code == 200
        token = send.call_args.args[1]

        reset = await client.post(
            "/api/auth/reset-password", json={"token": token, "password": NEW_PASSWORD}
        )
        assert reset.status_code == 200

        assert (await login(client, user.email)).status_code == 401
        assert (await login(client, user.email, NEW_PASSWORD)).status_code == 200
        # Existing sessions are signed out
        refreshed = await client.post(
            "/api/auth/refresh", json={"refresh_token": session_tokens["refresh_token"]}
        )
        assert refreshed.status_code == 401
        # Tokens are single use
        reused = await client.post(
            "/api/auth/reset-password", json={"token": token, "password": NEW_PASSWORD}
        )
        assert reused.json()["error"] == "INVALID_RESET_TOKEN"

    async def test_forgot_password_unknown_email_still_succeeds(
        self, client: AsyncClient
    ) -> None:
        with patch(
            "src.cybertask.services.password_reset_service.send_password_reset_email"
        ) as send:
            response = await client.post(
                "/api/auth/forgot-password", json={"email": "ghost@example.com"}
            )

        assert response.status_code == 200
        send.assert_not_called()

    async def test_unknown_reset_token(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/auth/reset-password", json={"token": "x" * 43, "password": NEW_PASSWORD}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_RESET_TOKEN"


class TestEmailVerification:
    async def test_verify_email(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        unverified = await create_user(db_session, email_verified=False, email_verified_at=None)
        token = "v" * 43
        db_session.add(
            EmailVerificationTokenFactory.build(user_id=unverified.id, token_hash=hash_token(token))
        )
        await db_session.commit()

        response = await client.post("/api/auth/verify-email", json={"token": token})

        assert response.status_code == 200
        assert response.json()["data"]["email_verified"] is True
        reused = await client.post("/api/auth/verify-email", json={"token": token})
        assert reused.json()["error"] == "INVALID_VERIFICATION_TOKEN"

    async def test_expired_verification_token(
        self, client: AsyncClient, db_session: AsyncSession, user: User
    ) -> None:
        token = "e" * 43
        db_session.add(
            EmailVerificationTokenFactory.expired(user_id=user.id, token_hash=hash_token(token))
        )
        await db_session.commit()

        response = await client.post("/api/auth/verify-email", json={"token": token})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_VERIFICATION_TOKEN"

    async def test_resend_for_verified_user(
        self, client: AsyncClient, user_headers: dict
    ) -> None:
        response = await client.post("/api/auth/resend-verification", headers=user_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "EMAIL_ALREADY_VERIFIED"

    async def test_resend_for_unverified_user(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        unverified = await create_user(db_session, email_verified=False, email_verified_at=None)

        with patch(
            "src.cybertask.services.email_verification_service.send_verification_email"
        ) as send:
            response = await client.post(
                "/api/auth/resend-verification", headers=auth_headers(unverified)
            )

        assert response.status_code == 200
        send.assert_called_once()
