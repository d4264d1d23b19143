"""Tests for structured logging context."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.cybertask.core.logging import (
    bind_request_context,
    bind_user_context,
    clear_request_context,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Route structlog output into a CapturingLogger for the duration of a test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def _last_entry(capturing_logger: CapturingLogger) -> dict:
    structlog.get_logger().info("test message")
    entries = capturing_logger.calls
    assert len(entries) == 1
    return entries[0].kwargs


def test_bind_request_context(capturing_logger):
    bind_request_context("test-request-123")

    assert _last_entry(capturing_logger)["request_id"] == "test-request-123"


def test_bind_request_context_with_none(capturing_logger):
    bind_request_context(None)

    assert "request_id" not in _last_entry(capturing_logger)


def test_bind_user_context_omits_email_by_default(capturing_logger):
    """Emails are personal data and are only logged when explicitly enabled."""
    user_id = uuid4()

    bind_user_context(user_id, "MANAGER", "ada@example.com")

    entry = _last_entry(capturing_logger)
    assert entry["user_id"] == str(user_id)
    assert entry["user_role"] == "MANAGER"
    assert "user_email" not in entry


def test_bind_user_context_with_email_logging_enabled(capturing_logger, monkeypatch):
    from src.cybertask.core import config

    mock_settings = MagicMock()
    mock_settings.log_user_emails = True
    monkeypatch.setattr(config, "get_settings", lambda: mock_settings)

    bind_user_context(uuid4(), "USER", "ada@example.com")

    assert _last_entry(capturing_logger)["user_email"] == "ada@example.com"


def test_clear_request_context(capturing_logger):
    bind_request_context("test-request-123")
    bind_user_context(uuid4(), "ADMIN")

    clear_request_context()

    entry = _last_entry(capturing_logger)
    assert "request_id" not in entry
    assert "user_id" not in entry
    assert "user_role" not in entry


def test_context_accumulation(capturing_logger):
    user_id = uuid4()

    bind_request_context("test-request-123")
    bind_user_context(user_id, "USER")

    entry = _last_entry(capturing_logger)
    assert entry["request_id"] == "test-request-123"
    assert entry["user_id"] == str(user_id)
