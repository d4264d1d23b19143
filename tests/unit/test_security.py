"""Tests for password policy, hashing and JWT handling."""

from datetime import timedelta

import pytest
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from src.cybertask.core.config import get_settings
from src.cybertask.core.security import (
    TokenType,
    create_access_token,
    create_refresh_token,
    hash_password,
    hash_token,
    read_token,
    validate_password_strength,
    verify_password,
)
from src.cybertask.schemas.auth import RegisterRequest
from tests.helpers import NEW_PASSWORD

pytestmark = pytest.mark.unit


class TestPasswordPolicy:
    def test_accepts_strong_password(self):
        assert validate_password_strength(NEW_PASSWORD) == NEW_PASSWORD

    def test_rejects_short_password(self):
        with pytest.raises(ValueError, match="at least 8 characters"):
            validate_password_strength("Ab1!")

    def test_rejects_overlong_password(self):
        with pytest.raises(ValueError, match="at most 128 characters"):
            validate_password_strength("Aa1!" * 40)

    def test_lists_missing_character_classes(self):
        with pytest.raises(ValueError) as exc_info:
            validate_password_strength("lowercase-only-words")

        message = str(exc_info.value)
        assert "uppercase" in message
        assert "number" in message

    def test_rejects_guessable_password(self):
        """Composition rules alone are not enough; zxcvbn must agree."""
        with pytest.raises(ValueError, match="(?i)weak"):
            validate_password_strength("Password1!")

    def test_user_inputs_weaken_password(self):
        """A password built from the user's own name is guessable."""
        with pytest.raises(ValueError, match="(?i)weak"):
            validate_password_strength(
                "Lovelace1815!", user_inputs=["ada.lovelace@example.com", "Lovelace"]
            )


class TestRegisterRequestValidation:
    def _payload(self, **overrides) -> dict:
        payload = {
            "email": "  Ada@Example.COM ",
            "username": "ada_l",
            "first_name": " Ada ",
            "last_name": "Lovelace",
            "password": NEW_PASSWORD,
        }
        payload.update(overrides)
        return payload

    def test_normalizes_email_and_names(self):
        request = RegisterRequest(**self._payload())

        assert request.email == "ada@example.com"
        assert request.first_name == "Ada"

    @pytest.mark.parametrize("username", ["ab", "has space", "dash-name", "x" * 31])
    def test_rejects_invalid_usernames(self, username: str):
        with pytest.raises(ValidationError):
            RegisterRequest(**self._payload(username=username))

    def test_rejects_blank_name(self):
        with pytest.raises(ValidationError, match="whitespace"):
            RegisterRequest(**self._payload(first_name="   "))

    def test_rejects_weak_password(self):
        with pytest.raises(ValidationError):
            RegisterRequest(**self._payload(password="Password1!"))


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password(NEW_PASSWORD)

        assert hashed.startswith("$argon2id$")
        assert verify_password(NEW_PASSWORD, hashed) is True
        assert verify_password("wrong-password", hashed) is False

    def test_verify_rejects_malformed_hash(self):
        assert verify_password(NEW_PASSWORD, "not-a-hash") is False

    def test_hash_token_is_stable_sha256(self):
        assert hash_token("abc") == hash_token("abc")
        assert len(hash_token("abc")) == 64
        assert hash_token("abc") != hash_token("abd")


class TestJwt:
    def test_access_token_claims(self):
        token = create_access_token("user-1", "ada@example.com", "MANAGER")

        payload = read_token(token)
        settings = get_settings()
        assert payload["sub"] == "user-1"
        assert payload["email"] == "ada@example.com"
        assert payload["role"] == "MANAGER"
        assert payload["type"] == TokenType.ACCESS
        assert payload["iss"] == settings.jwt_issuer
        assert payload["aud"] == settings.jwt_audience

    def test_refresh_tokens_are_unique(self):
        first, _ = create_refresh_token("user-1")
        second, _ = create_refresh_token("user-1")

        assert first != second
        assert read_token(first)["type"] == TokenType.REFRESH

    def test_remember_me_extends_refresh_lifetime(self):
        _, short_expiry = create_refresh_token("user-1")
        _, long_expiry = create_refresh_token("user-1", remember_me=True)

        settings = get_settings()
        expected = timedelta(
            days=settings.remember_me_refresh_token_expire_days
            - settings.refresh_token_expire_days
        )
        assert long_expiry - short_expiry == pytest.approx(expected, abs=timedelta(seconds=5))
        assert short_expiry.tzinfo is None

    def test_expired_token_raises(self):
        token = create_access_token("user-1", "a@b.co", "USER", timedelta(seconds=-1))

        with pytest.raises(ExpiredSignatureError):
            read_token(token)

    def test_wrong_audience_is_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "user-1", "type": "access", "aud": "someone-else", "iss": settings.jwt_issuer},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(JWTError):
            read_token(token)

    def test_tampered_token_is_rejected(self):
        token = create_access_token("user-1", "a@b.co", "USER")

        with pytest.raises(JWTError):
            read_token(token[:-2] + "xx")
