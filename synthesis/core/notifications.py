"""Sign-in notification email.

Sent through the Resend API on each successful sign-in. Best effort: any
failure is logged and reported as False, never raised to the caller.
"""

from datetime import datetime, timezone
from html import escape
from typing import Any
from zoneinfo import ZoneInfo

import httpx

from synthesis.core.config import Settings, get_settings
from synthesis.core.logging import get_logger

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
NOTIFICATION_TIMEZONE = ZoneInfo("America/New_York")


async def _send_via_resend(
    settings: Settings,
    to_emails: list[str],
    subject: str,
    html_body: str,
) -> dict[str, Any]:
    """Send email via the Resend API."""
    if not settings.RESEND_API_KEY:
        raise ValueError("RESEND_API_KEY not configured")

    payload: dict[str, Any] = {
        "from": f"{settings.RESEND_FROM_NAME} <{settings.RESEND_FROM_EMAIL}>",
        "to": to_emails,
        "subject": subject,
        "html": html_body,
    }

    async with httpx.AsyncClient(timeout=15) as client:
        response = await client.post(
            RESEND_API_URL,
            headers={
                "Authorization": f"Bearer {settings.RESEND_API_KEY}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        response.raise_for_status()

        data = response.json()
        message_id = data.get("id", "")
        logger.info(f"Resend email sent, subject='{subject}', message_id={message_id}")
        return {"message_id": message_id, "status": "sent"}


def build_sign_in_email(user_name: str | None, user_email: str, when: datetime) -> tuple[str, str]:
    """Subject and HTML body for a sign-in notice."""
    subject = f"Sign-in: {user_name or user_email}"
    local_time = when.astimezone(NOTIFICATION_TIMEZONE).strftime("%m/%d/%Y, %I:%M:%S %p")
    html_body = f"""
    <h2>New Sign-In</h2>
    <p><strong>Name:</strong> {escape(user_name or "N/A")}</p>
    <p><strong>Email:</strong> {escape(user_email)}</p>
    <p><strong>Time:</strong> {local_time}</p>
    """
    return subject, html_body


async def notify_sign_in(
    user_name: str | None,
    user_email: str,
    settings: Settings | None = None,
) -> bool:
    """
    Notify the configured recipient that a user signed in.

    Args:
        user_name: Display name, if known
        user_email: Email of the user who signed in

    Returns:
        True if the email was accepted by Resend
    """
    settings = settings or get_settings()
    if not user_email:
        logger.warning("Sign-in notification skipped: no user email")
        return False
    if not settings.NOTIFICATION_EMAIL:
        logger.error("NOTIFICATION_EMAIL is not set; sign-in notification skipped")
        return False

    subject, html_body = build_sign_in_email(user_name, user_email, datetime.now(timezone.utc))
    try:
        await _send_via_resend(settings, [settings.NOTIFICATION_EMAIL], subject, html_body)
    except Exception as e:
        logger.error(f"Failed to send sign-in notification for {user_email}: {e}")
        return False
    return True
