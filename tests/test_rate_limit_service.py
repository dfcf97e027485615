"""Tests for paperink/services/rate_limit_service.py"""

from datetime import datetime, timedelta

import pytest

from paperink.models.hero_creation_log import HeroCreationLog
from paperink.services.rate_limit_service import (
    MAX_HEROES_PER_WEEK,
    RateLimitExceeded,
    check_creation_allowed,
    count_recent_creations,
    is_allowed,
    record_creation,
)

NOW = datetime(2026, 3, 10, 12, 0, 0)


async def _log(db, user_id, days_ago):
    db.add(HeroCreationLog(user_id=user_id, created_at=NOW - timedelta(days=days_ago)))
    await db.commit()


async def test_counts_only_entries_inside_window(db):
    await _log(db, "user-1", 1)
    await _log(db, "user-1", 6.5)
    await _log(db, "user-1", 8)
    await _log(db, "user-2", 1)

    assert await count_recent_creations(db, "user-1", now=NOW) == 2


async def test_allows_below_limit_and_returns_count(db):
    for _ in range(MAX_HEROES_PER_WEEK - 1):
        await _log(db, "user-1", 1)

    assert await check_creation_allowed(db, "user-1", now=NOW) == MAX_HEROES_PER_WEEK - 1
    assert await is_allowed(db, "user-1", now=NOW) is True


async def test_refuses_at_limit_with_reset_days(db):
    await _log(db, "user-1", 4.5)
    for _ in range(MAX_HEROES_PER_WEEK - 1):
        await _log(db, "user-1", 1)

    with pytest.raises(RateLimitExceeded) as exc_info:
        await check_creation_allowed(db, "user-1", now=NOW)

    exc = exc_info.value
    assert exc.current_count == MAX_HEROES_PER_WEEK
    assert exc.max_allowed == MAX_HEROES_PER_WEEK
    # oldest entry drops out of the window in 2.5 days
    assert exc.resets_in_days == 3


async def test_reset_days_is_at_least_one(db):
    for _ in range(MAX_HEROES_PER_WEEK):
        await _log(db, "user-1", 6.99)

    with pytest.raises(RateLimitExceeded) as exc_info:
        await check_creation_allowed(db, "user-1", now=NOW)

    assert exc_info.value.resets_in_days == 1


async def test_record_creation_counts_towards_limit(db):
    await record_creation(db, "user-1", now=NOW)

    assert await count_recent_creations(db, "user-1", now=NOW) == 1
