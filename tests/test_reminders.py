"""Tests for reminder links (GET /api/disable-reminders) and dispatch (POST /api/send-reminders)."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from conftest import TEST_CRON_SECRET
from paperink.models.profile import Profile
from paperink.models.reminder_settings import ReminderSettings
from paperink.models.unsubscribe_token import UnsubscribeToken
from paperink.services.email_service import EmailNotConfigured
from paperink.services.reminder_service import (
    FixedWindowLimiter,
    _bucket,
    issue_token,
    local_bucket,
    send_due_reminders,
)


@pytest.fixture
def resend_key():
    with patch("paperink.services.email_service.RESEND_API_KEY", "re_test_key"):
        yield


async def _settings(db, user_id="user-1", **overrides):
    values = dict(
        user_id=user_id,
        email_opt_in=True,
        bedtime_enabled=True,
        story_enabled=True,
        bedtime_time="19:30",
        story_time="18:00",
        timezone="UTC",
    )
    values.update(overrides)
    db.add(ReminderSettings(**values))
    await db.commit()


async def _flags(db, user_id="user-1"):
    return (await db.execute(
        select(ReminderSettings.email_opt_in, ReminderSettings.bedtime_enabled, ReminderSettings.story_enabled)
        .where(ReminderSettings.user_id == user_id)
    )).one()


# ---------------------------------------------------------------------------
# Disable link
# ---------------------------------------------------------------------------


async def test_disable_all_then_link_is_spent(client, db):
    await _settings(db)
    token = await issue_token(db, "user-1", "all")

    first = await client.get("/api/disable-reminders", params={"token": token})

    assert first.status_code == 200
    assert first.headers["content-type"].startswith("text/html")
    assert "Done!" in first.text
    assert "All email reminders have been disabled." in first.text
    assert await _flags(db) == (False, False, False)

    second = await client.get("/api/disable-reminders", params={"token": token})

    assert second.status_code == 410
    assert "Oops!" in second.text
    assert "This link has already been used." in second.text


async def test_bedtime_token_only_disables_bedtime(client, db):
    await _settings(db)
    token = await issue_token(db, "user-1", "bedtime")

    resp = await client.get("/api/disable-reminders", params={"token": token})

    assert resp.status_code == 200
    assert "Bedtime reminders have been disabled." in resp.text
    assert await _flags(db) == (True, False, True)


async def test_malformed_token_is_400(client):
    resp = await client.get("/api/disable-reminders", params={"token": "short"})

    assert resp.status_code == 400
    assert "Invalid link." in resp.text


async def test_missing_token_is_400(client):
    resp = await client.get("/api/disable-reminders")

    assert resp.status_code == 400


async def test_unknown_token_is_404(client):
    resp = await client.get("/api/disable-reminders", params={"token": "a" * 43})

    assert resp.status_code == 404


async def test_expired_token_is_410(client, db):
    await _settings(db)
    token = await issue_token(db, "user-1", "all", now=datetime.utcnow() - timedelta(days=8))

    resp = await client.get("/api/disable-reminders", params={"token": token})

    assert resp.status_code == 410
    assert "expired" in resp.text
    assert await _flags(db) == (True, True, True)
    used_at = (await db.execute(
        select(UnsubscribeToken.used_at).where(UnsubscribeToken.token == token)
    )).scalar_one()
    assert used_at is None


async def test_disable_link_is_rate_limited_per_ip(client):
    statuses = []
    for _ in range(11):
        resp = await client.get(
            "/api/disable-reminders",
            params={"token": "short"},
            headers={"X-Forwarded-For": "203.0.113.7"},
        )
        statuses.append(resp.status_code)

    assert statuses[:10] == [400] * 10
    assert statuses[10] == 429

    other_ip = await client.get(
        "/api/disable-reminders",
        params={"token": "short"},
        headers={"X-Forwarded-For": "198.51.100.1"},
    )
    assert other_ip.status_code == 400


def test_fixed_window_limiter_resets_each_window():
    limiter = FixedWindowLimiter(max_requests=2, window_seconds=60)

    assert limiter.allow("ip", now=0)
    assert limiter.allow("ip", now=10)
    assert not limiter.allow("ip", now=20)
    assert limiter.allow("ip", now=61)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def test_time_buckets():
    assert _bucket("21:37") == "21:30"
    assert _bucket("07:05") == "07:00"
    assert _bucket("garbage") is None
    assert local_bucket(datetime(2026, 1, 15, 18, 44), "Europe/Brussels") == "19:40"
    assert local_bucket(datetime(2026, 1, 15, 18, 44), "Not/AZone") == "18:40"


async def test_send_due_reminders_sends_matching_bucket(db, resend_key):
    db.add(Profile(id="user-1", email="parent@example.com", credits=5))
    await _settings(db, bedtime_time="19:34", story_time="08:00")
    send = AsyncMock(return_value={"id": "email_1"})

    with patch("paperink.services.reminder_service.send_email", new=send):
        report = await send_due_reminders(db, now=datetime(2026, 1, 15, 19, 31))

    assert report.sent == 1
    assert report.checked == 1
    assert report.processed == ["bedtime:user-1"]
    to, subject, html = send.await_args.args
    assert to == ["parent@example.com"]
    assert "Wind Down" in subject
    assert "/api/disable-reminders?token=" in html

    tokens = (await db.execute(
        select(UnsubscribeToken.token_type).where(UnsubscribeToken.user_id == "user-1")
    )).scalars().all()
    assert sorted(tokens) == ["all", "bedtime"]


async def test_send_due_reminders_skips_opted_out_users(db, resend_key):
    db.add(Profile(id="user-1", email="parent@example.com", credits=5))
    await _settings(db, email_opt_in=False, bedtime_time="19:30")
    send = AsyncMock()

    with patch("paperink.services.reminder_service.send_email", new=send):
        report = await send_due_reminders(db, now=datetime(2026, 1, 15, 19, 31))

    assert report.checked == 0
    send.assert_not_awaited()


async def test_send_reminders_requires_cron_secret(client):
    resp = await client.post("/api/send-reminders", headers={"Authorization": "Bearer wrong"})

    assert resp.status_code == 401


async def test_send_reminders_reports_run(client, resend_key):
    resp = await client.post(
        "/api/send-reminders",
        headers={"Authorization": f"Bearer {TEST_CRON_SECRET}"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"sent": 0, "checked": 0, "processed": [], "errors": []}


async def test_send_due_reminders_without_email_key_mints_nothing(db):
    db.add(Profile(id="user-1", email="parent@example.com", credits=5))
    await _settings(db, bedtime_time="19:30")
    send = AsyncMock()

    with patch("paperink.services.reminder_service.send_email", new=send):
        with pytest.raises(EmailNotConfigured):
            await send_due_reminders(db, now=datetime(2026, 1, 15, 19, 31))

    send.assert_not_awaited()
    minted = (await db.execute(select(func.count(UnsubscribeToken.token)))).scalar()
    assert minted == 0


async def test_send_reminders_without_email_key_is_500(client):
    resp = await client.post(
        "/api/send-reminders",
        headers={"Authorization": f"Bearer {TEST_CRON_SECRET}"},
    )

    assert resp.status_code == 500
    assert "RESEND_API_KEY" in resp.json()["detail"]
