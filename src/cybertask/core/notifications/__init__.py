"""Outbound notifications (email)."""

from src.cybertask.core.notifications.email import (
    send_password_reset_email,
    send_verification_email,
)

__all__ = [
    "send_password_reset_email",
    "send_verification_email",
]
