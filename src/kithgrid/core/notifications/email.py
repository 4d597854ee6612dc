"""Invitation email delivery using the Resend API.

Delivery is best effort: every function here returns ``False`` on failure
and never raises, so a flaky mail provider cannot undo an issued code.
"""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime
from urllib.parse import quote

import resend

from src.kithgrid.core.config import get_settings
from src.kithgrid.core.logging import get_logger

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_CODE_STYLE = (
    "font-family: 'SFMono-Regular', Menlo, monospace; font-size: 28px; letter-spacing: 6px; "
    "background-color: #f1f5f9; padding: 12px 24px; border-radius: 6px; display: inline-block;"
)
_LINK_STYLE = "color: #2563eb; word-break: break-all;"
_MUTED_STYLE = "color: #666; font-size: 14px;"


def _deliver(to: str, subject: str, body: str, email_type: str) -> bool:
    settings = get_settings()

    if not settings.resend_api_key:
        # Dev mode: log instead of sending
        logger.warning("RESEND_API_KEY not set - email not sent", to=to, email_type=email_type)
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": [to],
                "subject": subject,
                "html": body,
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


def send_invitation_email(
    to: str,
    code: str,
    tenant_name: str,
    inviter_name: str | None = None,
    expires_at: datetime | None = None,
) -> bool:
    """Send an invitation code to a prospective member.

    Args:
        to: Recipient email address
        code: The invitation code (plaintext, shown in the body and the join link)
        tenant_name: Name of the community being joined
        inviter_name: Display name of the issuer, None for operator-issued codes
        expires_at: When the code stops being redeemable, None if it never does

    Returns:
        True if email was sent (or logged in dev mode), False on error
    """
    settings = get_settings()
    join_url = f"{settings.app_url}/join?code={quote(code)}"
    return _deliver(
        to,
        f"You've been invited to join {tenant_name}",
        _get_invitation_email_html(tenant_name, inviter_name, code, join_url, expires_at),
        email_type="invitation",
    )


def _get_invitation_email_html(
    tenant_name: str,
    inviter_name: str | None,
    code: str,
    join_url: str,
    expires_at: datetime | None,
) -> str:
    safe_tenant_name = html.escape(tenant_name)
    safe_code = html.escape(code)
    safe_url = html.escape(join_url)
    if inviter_name:
        intro = f"{html.escape(inviter_name)} has invited you to join <strong>{safe_tenant_name}</strong>."
    else:
        intro = f"You have been invited to join <strong>{safe_tenant_name}</strong>."
    if expires_at is not None:
        expiry = f"This code expires on {expires_at:%B %d, %Y} (UTC)."
    else:
        expiry = "This code does not expire, but it can only be used once."
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">You're invited!</h1>
    <p>{intro}</p>
    <p>Enter this code when you sign up:</p>
    <p style="margin: 32px 0;"><span style="{_CODE_STYLE}">{safe_code}</span></p>
    <p style="{_MUTED_STYLE}">
        Or open this link to join directly:<br>
        <a href="{safe_url}" style="{_LINK_STYLE}">{safe_url}</a>
    </p>
    <p style="{_MUTED_STYLE} margin-top: 32px;">
        {expiry} If you didn't expect this invitation, you can safely ignore this email.
    </p>
</body>
</html>"""
