# FILE: paperink/services/reminder_service.py
"""
Email reminders: the one-click disable link and the scheduled dispatch that
mints those links.

Disable links carry a random single-use token. It is consumed with a
conditional UPDATE (used_at IS NULL) so two clicks racing each other spend it
exactly once.
"""

import html
import logging
import re
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.config import PUBLIC_API_URL
from paperink.models.profile import Profile
from paperink.models.reminder_settings import ReminderSettings
from paperink.models.unsubscribe_token import UnsubscribeToken
from paperink.services.email_service import ensure_email_configured, send_email

logger = logging.getLogger("paperink.reminders")

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{40,50}$")
TOKEN_TTL_DAYS = 7
TOKEN_TYPES = ("all", "bedtime", "story")

# Flags switched off per token type
DISABLE_FLAGS = {
    "bedtime": {"bedtime_enabled": False},
    "story": {"story_enabled": False},
    "all": {"email_opt_in": False, "bedtime_enabled": False, "story_enabled": False},
}


# =========================
# PER-PROCESS IP LIMITER
# =========================

class FixedWindowLimiter:
    """
    Fixed-window counter keyed by client id. Lives in process memory: it is a
    soft, per-instance limit and resets on restart.
    """

    def __init__(self, max_requests: int = 10, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._counts: Dict[Tuple[str, int], int] = {}

    def allow(self, key: str, now: Optional[float] = None) -> bool:
        window = int((now if now is not None else time.time()) // self.window_seconds)
        bucket = (key, window)
        self._counts[bucket] = self._counts.get(bucket, 0) + 1
        if len(self._counts) > 10_000:
            self._counts = {k: v for k, v in self._counts.items() if k[1] == window}
        return self._counts[bucket] <= self.max_requests

    def reset(self) -> None:
        self._counts.clear()


disable_link_limiter = FixedWindowLimiter()


# =========================
# DISABLE LINK
# =========================

@dataclass
class DisableOutcome:
    status_code: int
    success: bool
    message: str


async def issue_token(db: AsyncSession, user_id: str, token_type: str = "all", now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    token = secrets.token_urlsafe(32)
    db.add(UnsubscribeToken(
        token=token,
        user_id=user_id,
        token_type=token_type,
        expires_at=now + timedelta(days=TOKEN_TTL_DAYS),
        created_at=now,
    ))
    await db.commit()
    return token


def disable_link(token: str) -> str:
    return f"{PUBLIC_API_URL}/api/disable-reminders?token={token}"


async def disable_reminders(db: AsyncSession, token: Optional[str], now: Optional[datetime] = None) -> DisableOutcome:
    now = now or datetime.utcnow()

    if not token or not TOKEN_PATTERN.match(token):
        return DisableOutcome(400, False, "Invalid link.")

    row = await db.get(UnsubscribeToken, token)
    if not row:
        return DisableOutcome(404, False, "This link is not valid. Please use the settings in the app to manage reminders.")
    if row.used_at is not None:
        return DisableOutcome(410, False, "This link has already been used.")
    if row.expires_at <= now:
        return DisableOutcome(410, False, "This link has expired. Please use the settings in the app to manage reminders.")

    token_type = row.token_type if row.token_type in DISABLE_FLAGS else "all"
    user_id = row.user_id

    consumed = await db.execute(
        update(UnsubscribeToken)
        .where(UnsubscribeToken.token == token, UnsubscribeToken.used_at.is_(None))
        .values(used_at=now)
    )
    if consumed.rowcount != 1:
        await db.rollback()
        return DisableOutcome(410, False, "This link has already been used.")

    await db.execute(
        update(ReminderSettings)
        .where(ReminderSettings.user_id == user_id)
        .values(updated_at=now, **DISABLE_FLAGS[token_type])
    )
    await db.commit()

    logger.info("Disabled %s reminders for user %s", token_type, user_id)
    if token_type == "all":
        return DisableOutcome(200, True, "All email reminders have been disabled.")
    return DisableOutcome(200, True, f"{token_type.capitalize()} reminders have been disabled.")


def render_page(message: str, success: bool) -> str:
    icon = "✓" if success else "✗"
    color = "#48bb78" if success else "#f56565"
    heading = "Done!" if success else "Oops!"
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Paper &amp; Ink - Reminders</title>
  <style>
    body {{ font-family: Georgia, serif; display: flex; justify-content: center; align-items: center;
           min-height: 100vh; margin: 0; background: linear-gradient(135deg, #f7f3e9 0%, #e8e4da 100%); }}
    .card {{ background: white; border-radius: 16px; padding: 40px; text-align: center;
            box-shadow: 0 10px 40px rgba(0,0,0,0.1); max-width: 400px; }}
    .icon {{ width: 60px; height: 60px; border-radius: 50%; display: flex; align-items: center;
            justify-content: center; margin: 0 auto 20px; font-size: 24px; background: {color}20; color: {color}; }}
    h1 {{ color: #4a5568; margin: 0 0 10px; font-size: 24px; }}
    p {{ color: #718096; line-height: 1.6; margin: 0; }}
    .link {{ margin-top: 20px; }}
    .link a {{ color: #667eea; text-decoration: none; }}
  </style>
</head>
<body>
  <div class="card">
    <div class="icon">{icon}</div>
    <h1>{heading}</h1>
    <p>{html.escape(message)}</p>
    <div class="link"><a href="/">&larr; Back to Paper &amp; Ink</a></div>
  </div>
</body>
</html>
"""


# =========================
# DISPATCH
# =========================

BEDTIME_SUBJECT = "🌙 Time to Wind Down"
STORY_SUBJECT = "✨ Story Time Awaits!"


def _bucket(hhmm: str) -> Optional[str]:
    """'21:37' -> '21:30' (10-minute buckets)."""
    try:
        hours, minutes = (int(p) for p in hhmm.split(":")[:2])
    except (ValueError, AttributeError):
        return None
    return f"{hours:02d}:{(minutes // 10) * 10:02d}"


def local_bucket(now_utc: datetime, tz_name: Optional[str]) -> str:
    try:
        tz = ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Invalid timezone %s, using UTC", tz_name)
        tz = ZoneInfo("UTC")
    local = now_utc.replace(tzinfo=ZoneInfo("UTC")).astimezone(tz)
    return f"{local.hour:02d}:{(local.minute // 10) * 10:02d}"


def _email_html(title: str, body: str, stop_label: str, stop_url: str, all_url: str) -> str:
    return f"""
<div style="font-family: Georgia, serif; max-width: 500px; margin: 0 auto; padding: 20px; background: #fffbf5;">
  <h1 style="color: #4a5568; font-size: 24px; margin-bottom: 16px;">{title}</h1>
  <p style="color: #718096; line-height: 1.6;">{body}</p>
  <hr style="border: none; border-top: 1px solid #e2e8f0; margin: 24px 0;" />
  <p style="color: #a0aec0; font-size: 12px; text-align: center;">
    <a href="{stop_url}" style="color: #a0aec0; margin-right: 16px;">{stop_label}</a>
    <a href="{all_url}" style="color: #a0aec0;">Unsubscribe from all</a>
  </p>
</div>
"""


@dataclass
class DispatchReport:
    sent: int = 0
    checked: int = 0
    processed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


async def send_due_reminders(db: AsyncSession, now: Optional[datetime] = None) -> DispatchReport:
    """Mint disable links and send every reminder due in the current 10-minute bucket."""
    # No tokens are minted when email cannot go out
    ensure_email_configured()

    now = now or datetime.utcnow()
    report = DispatchReport()

    rows = (await db.execute(
        select(ReminderSettings, Profile.email)
        .join(Profile, Profile.id == ReminderSettings.user_id, isouter=True)
        .where(
            ReminderSettings.email_opt_in.is_(True),
            or_(ReminderSettings.bedtime_enabled.is_(True), ReminderSettings.story_enabled.is_(True)),
        )
    )).all()
    report.checked = len(rows)

    for setting, email in rows:
        user_id = setting.user_id
        if not email:
            report.errors.append(f"no_email:{user_id}")
            continue

        current = local_bucket(now, setting.timezone)
        due = []
        if setting.bedtime_enabled and setting.bedtime_time and _bucket(setting.bedtime_time) == current:
            due.append("bedtime")
        if setting.story_enabled and setting.story_time and _bucket(setting.story_time) == current:
            due.append("story")

        for kind in due:
            try:
                stop_url = disable_link(await issue_token(db, user_id, kind, now))
                all_url = disable_link(await issue_token(db, user_id, "all", now))
                if kind == "bedtime":
                    subject = BEDTIME_SUBJECT
                    body = _email_html(
                        "Time to Wind Down 🌙",
                        "It's almost bedtime! Maybe it's time for a cozy bedtime story?",
                        "Stop bedtime reminders", stop_url, all_url,
                    )
                else:
                    subject = STORY_SUBJECT
                    body = _email_html(
                        "Story Time Awaits! ✨",
                        "Your heroes are waiting for their next adventure. Ready to create some bedtime magic?",
                        "Stop story reminders", stop_url, all_url,
                    )
                await send_email([email], subject, body)
                report.sent += 1
                report.processed.append(f"{kind}:{user_id}")
            except Exception as exc:
                logger.error("Failed to send %s reminder to %s: %s", kind, user_id, exc)
                report.errors.append(f"{kind}_send:{user_id}")

    logger.info("Reminder run: sent %s, checked %s, errors %s", report.sent, report.checked, len(report.errors))
    return report
