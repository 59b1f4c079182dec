"""
Outbound email via the Resend HTTP API.

send_email() never raises: the outcome is reported as an EmailResult so a
batch caller can record it and carry on.
"""
import logging
from dataclasses import dataclass

import requests

from subtrack.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailResult:
    success: bool
    error: str | None = None


def send_email(to: str, subject: str, html: str) -> EmailResult:
    """Send one HTML email. Returns EmailResult(success, error)."""
    cfg = get_settings()
    if not cfg.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY not configured, skipping email send")
        return EmailResult(success=False, error="Email not configured")

    try:
        resp = requests.post(
            cfg.RESEND_API_URL,
            headers={"Authorization": f"Bearer {cfg.RESEND_API_KEY}"},
            json={
                "from": cfg.EMAIL_FROM,
                "to": [to],
                "subject": subject,
                "html": html,
            },
            timeout=10,
        )
    except requests.RequestException as e:
        logger.exception("Email send failed for %s", to)
        return EmailResult(success=False, error=str(e))

    if not resp.ok:
        logger.error("Email API rejected message to %s: %s %s", to, resp.status_code, resp.text)
        return EmailResult(success=False, error=f"HTTP {resp.status_code}: {resp.text}")

    return EmailResult(success=True)
