# FILE: paperink/services/rate_limit_service.py
"""
Hero creation limit over a trailing window, counted from hero_creation_log.

Advisory only: two concurrent creations can both see count < max and the
user ends up with max + 1 heroes in the window.
"""

import math
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.models.hero_creation_log import HeroCreationLog

logger = logging.getLogger("paperink.rate_limit")

MAX_HEROES_PER_WEEK = 7
DAYS_WINDOW = 7


class RateLimitExceeded(Exception):
    def __init__(self, current_count: int, max_allowed: int, resets_in_days: int):
        self.current_count = current_count
        self.max_allowed = max_allowed
        self.resets_in_days = resets_in_days
        super().__init__(
            f"You can create up to {max_allowed} heroes per week. "
            f"Try again in {resets_in_days} day{'s' if resets_in_days != 1 else ''}."
        )


async def count_recent_creations(
        db: AsyncSession,
        user_id: str,
        window_days: int = DAYS_WINDOW,
        now: Optional[datetime] = None,
) -> int:
    since = (now or datetime.utcnow()) - timedelta(days=window_days)
    count = (await db.execute(
        select(func.count(HeroCreationLog.id))
        .where(HeroCreationLog.user_id == user_id, HeroCreationLog.created_at >= since)
    )).scalar()
    return count or 0


async def _days_until_reset(db: AsyncSession, user_id: str, window_days: int, now: datetime) -> int:
    since = now - timedelta(days=window_days)
    oldest = (await db.execute(
        select(func.min(HeroCreationLog.created_at))
        .where(HeroCreationLog.user_id == user_id, HeroCreationLog.created_at >= since)
    )).scalar()
    if oldest is None:
        return window_days
    remaining = (oldest + timedelta(days=window_days)) - now
    return max(1, math.ceil(remaining.total_seconds() / 86400))


async def check_creation_allowed(
        db: AsyncSession,
        user_id: str,
        max_allowed: int = MAX_HEROES_PER_WEEK,
        window_days: int = DAYS_WINDOW,
        now: Optional[datetime] = None,
) -> int:
    """Return the current count when another creation is allowed; raise RateLimitExceeded otherwise."""
    now = now or datetime.utcnow()
    current = await count_recent_creations(db, user_id, window_days, now)
    logger.info("User %s created %s heroes in the last %s days", user_id, current, window_days)
    if current >= max_allowed:
        raise RateLimitExceeded(current, max_allowed, await _days_until_reset(db, user_id, window_days, now))
    return current


async def is_allowed(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> bool:
    return await count_recent_creations(db, user_id, now=now) < MAX_HEROES_PER_WEEK


async def record_creation(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> None:
    db.add(HeroCreationLog(user_id=user_id, created_at=now or datetime.utcnow()))
    await db.commit()
