# FILE: paperink/services/email_service.py
import logging
from typing import Dict, List

import httpx

from paperink.core.config import RESEND_API_KEY, REMINDER_FROM_EMAIL

logger = logging.getLogger("paperink.email")

RESEND_API_URL = "https://api.resend.com/emails"


class EmailNotConfigured(RuntimeError):
    pass


def ensure_email_configured() -> None:
    if not RESEND_API_KEY:
        raise EmailNotConfigured("RESEND_API_KEY not configured (.env).")


async def send_email(to: List[str], subject: str, html: str) -> Dict:
    """Send one email through the Resend HTTP API. Returns Resend's JSON ({"id": ...})."""
    ensure_email_configured()

    async with httpx.AsyncClient() as client:
        resp = await client.post(
            RESEND_API_URL,
            json={
                "from": REMINDER_FROM_EMAIL,
                "to": to,
                "subject": subject,
                "html": html,
            },
            headers={"Authorization": f"Bearer {RESEND_API_KEY}"},
            timeout=30,
        )
        resp.raise_for_status()
        return resp.json()
