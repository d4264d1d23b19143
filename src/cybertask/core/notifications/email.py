"""Transactional email through the Resend API."""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

import resend

from src.cybertask.core.config import get_settings
from src.cybertask.core.logging import get_logger

logger = get_logger(__name__)

# Resend's client is synchronous; sends run here so a timeout can be enforced
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #e5e7eb; background-color: #0f172a; "
    "max-width: 600px; margin: 0 auto; padding: 20px;"
)
_BUTTON_STYLE = (
    "background-color: #06b6d4; color: #0f172a; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block; font-weight: 600;"
)
_LINK_STYLE = "color: #06b6d4; word-break: break-all;"
_MUTED_STYLE = "color: #94a3b8; font-size: 14px;"


def _deliver(to: str, subject: str, body_html: str, email_type: str) -> bool:
    """Send one email. Returns True when sent (or skipped in dev), False on error."""
    settings = get_settings()

    if not settings.resend_api_key:
        logger.warning("RESEND_API_KEY not set - email not sent", to=to, email_type=email_type)
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": [to],
                "subject": subject,
                "html": body_html,
            }
        )

    try:
        future = _email_executor.submit(_send)
        future.result(timeout=settings.email_send_timeout_seconds)
        logger.info("Email sent", to=to, email_type=email_type)
        return True
    except FuturesTimeoutError:
        logger.error(
            "Email send timed out",
            to=to,
            email_type=email_type,
            timeout=settings.email_send_timeout_seconds,
        )
        return False
    except Exception as e:
        logger.error("Failed to send email", to=to, email_type=email_type, error=str(e))
        return False


def send_verification_email(to: str, token: str, user_name: str) -> bool:
    """Send the email verification link.

    Args:
        to: Recipient email address
        token: Plaintext verification token, embedded in the link
        user_name: Name used in the greeting
    """
    settings = get_settings()
    url = f"{settings.app_url}/verify-email?token={token}"
    body = _render(
        title="Verify your email",
        user_name=user_name,
        intro=f"Welcome to {settings.app_name}. Confirm your email address to finish setup.",
        action_label="Verify Email",
        action_url=url,
        footer=(
            f"This link expires in {settings.email_verification_expire_hours} hours. "
            "If you didn't create an account, you can ignore this email."
        ),
    )
    return _deliver(to, "Verify your email address", body, "verification")


def send_password_reset_email(to: str, token: str, user_name: str) -> bool:
    """Send the password reset link."""
    settings = get_settings()
    url = f"{settings.app_url}/reset-password?token={token}"
    body = _render(
        title="Reset your password",
        user_name=user_name,
        intro="We received a request to reset your password.",
        action_label="Reset Password",
        action_url=url,
        footer=(
            f"This link expires in {settings.password_reset_expire_minutes} minutes. "
            "If you didn't ask for a reset, your password stays unchanged."
        ),
    )
    return _deliver(to, "Reset your password", body, "password_reset")


def _render(
    title: str,
    user_name: str,
    intro: str,
    action_label: str,
    action_url: str,
    footer: str,
) -> str:
    safe_name = html.escape(user_name)
    safe_url = html.escape(action_url, quote=True)
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #06b6d4; margin-bottom: 24px;">{html.escape(title)}</h1>
    <p>Hi {safe_name},</p>
    <p>{html.escape(intro)}</p>
    <p style="margin: 32px 0;">
        <a href="{safe_url}" style="{_BUTTON_STYLE}">{html.escape(action_label)}</a>
    </p>
    <p style="{_MUTED_STYLE}">Or copy this link into your browser:</p>
    <p style="{_LINK_STYLE}">{safe_url}</p>
    <p style="{_MUTED_STYLE}">{html.escape(footer)}</p>
</body>
</html>"""
