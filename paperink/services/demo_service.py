# FILE: paperink/services/demo_service.py

"""
Guest demo: one hero and up to DEMO_STORY_LIMIT AI stories per browser id.

No account and no credits. The quota lives on `demo_profiles.stories_used`
and is claimed with a conditional UPDATE after the story came back, so a
failed AI call never spends one of the guest's stories.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.models.demo_episode import DemoEpisode
from paperink.models.demo_hero import DemoHero
from paperink.models.demo_preference import DemoPreference
from paperink.models.demo_profile import DemoProfile
from paperink.services.ai_service import generate_demo_story_text

logger = logging.getLogger("paperink.demo")

DEMO_STORY_LIMIT = 3
TOP_TAGS = 5


class DemoLimitReached(Exception):
    def __init__(self, stories_used: int):
        super().__init__(f"Demo limit reached ({stories_used} stories)")
        self.stories_used = stories_used


class DemoHeroNotFound(Exception):
    pass


# =========================
# PROFILE / HERO
# =========================

async def ensure_demo_profile(db: AsyncSession, demo_id: str) -> None:
    if await db.get(DemoProfile, demo_id):
        return
    db.add(DemoProfile(id=demo_id, stories_used=0))
    try:
        await db.commit()
    except IntegrityError:
        # Another tab created it first
        await db.rollback()


async def _stories_used(db: AsyncSession, demo_id: str) -> int:
    used = (await db.execute(
        select(DemoProfile.stories_used).where(DemoProfile.id == demo_id)
    )).scalar_one_or_none()
    return used or 0


async def _top_tags(db: AsyncSession, demo_id: str) -> List[str]:
    return list((await db.execute(
        select(DemoPreference.tag)
        .where(DemoPreference.profile_id == demo_id)
        .order_by(DemoPreference.score.desc(), DemoPreference.tag)
        .limit(TOP_TAGS)
    )).scalars().all())


async def _last_episode(db: AsyncSession, demo_id: str) -> Optional[DemoEpisode]:
    return (await db.execute(
        select(DemoEpisode)
        .where(DemoEpisode.profile_id == demo_id)
        .order_by(DemoEpisode.episode_number.desc())
        .limit(1)
    )).scalar_one_or_none()


def _hero_dict(hero: DemoHero) -> Dict[str, Any]:
    return {
        "profile_id": hero.profile_id,
        "hero_name": hero.hero_name,
        "hero_type": hero.hero_type,
        "hero_trait": hero.hero_trait,
        "comfort_item": hero.comfort_item,
        "age_band": hero.age_band,
        "sidekick_name": hero.sidekick_name,
        "sidekick_archetype": hero.sidekick_archetype,
    }


def _episode_dict(episode: DemoEpisode) -> Dict[str, Any]:
    return {
        "id": episode.id,
        "episode_number": episode.episode_number,
        "story_text": episode.story_text,
        "episode_summary": episode.episode_summary,
        "choices_json": episode.choices_json,
        "tags_used": episode.tags_used or [],
        "created_at": episode.created_at.isoformat() if episode.created_at else None,
    }


async def get_demo_session(db: AsyncSession, demo_id: str) -> Dict[str, Any]:
    """Everything the demo needs to resume: quota, hero, last episode and favourite tags."""
    await ensure_demo_profile(db, demo_id)

    hero = await db.get(DemoHero, demo_id)
    last = await _last_episode(db, demo_id)
    return {
        "profile": {"id": demo_id, "stories_used": await _stories_used(db, demo_id)},
        "hero": _hero_dict(hero) if hero else None,
        "last_episode": _episode_dict(last) if last else None,
        "top_tags": await _top_tags(db, demo_id),
    }


async def save_demo_hero(db: AsyncSession, demo_id: str, hero: Dict[str, Any]) -> None:
    await ensure_demo_profile(db, demo_id)

    values = dict(
        hero_name=hero["heroName"],
        hero_type=hero["heroType"],
        hero_trait=hero["heroTrait"],
        comfort_item=hero["comfortItem"],
        age_band=hero["ageBand"],
        sidekick_name=hero.get("sidekickName") or None,
        sidekick_archetype=hero.get("sidekickArchetype") or None,
    )

    row = await db.get(DemoHero, demo_id)
    if row is None:
        db.add(DemoHero(profile_id=demo_id, **values))
        try:
            await db.commit()
            return
        except IntegrityError:
            await db.rollback()

    await db.execute(
        update(DemoHero)
        .where(DemoHero.profile_id == demo_id)
        .values(updated_at=datetime.utcnow(), **values)
    )
    await db.commit()


# =========================
# STORIES
# =========================

def _insert_preference_ignoring_duplicates(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(DemoPreference).on_conflict_do_nothing(index_elements=["profile_id", "tag"])
    if dialect == "sqlite":
        return sqlite_insert(DemoPreference).on_conflict_do_nothing(index_elements=["profile_id", "tag"])
    if dialect in ("mysql", "mariadb"):
        return insert(DemoPreference).prefix_with("IGNORE")
    return insert(DemoPreference)


async def _bump_preferences(db: AsyncSession, demo_id: str, tags: List[str]) -> None:
    if not tags:
        return
    now = datetime.utcnow()
    await db.execute(
        _insert_preference_ignoring_duplicates(db),
        [{"profile_id": demo_id, "tag": tag, "score": 0, "updated_at": now} for tag in tags],
    )
    await db.execute(
        update(DemoPreference)
        .where(DemoPreference.profile_id == demo_id, DemoPreference.tag.in_(tags))
        .values(score=DemoPreference.score + 1, updated_at=now)
    )


def _dedupe(tags: List[str]) -> List[str]:
    seen = []
    for tag in tags:
        if tag and tag not in seen:
            seen.append(tag)
    return seen


async def generate_demo_story(
        db: AsyncSession,
        demo_id: str,
        selections: Dict[str, str],
        selection_tags: Optional[List[str]] = None,
        language: Optional[str] = None,
) -> Dict[str, Any]:
    used = await _stories_used(db, demo_id)
    if used >= DEMO_STORY_LIMIT:
        raise DemoLimitReached(used)
    await ensure_demo_profile(db, demo_id)

    hero = await db.get(DemoHero, demo_id)
    if hero is None:
        raise DemoHeroNotFound(demo_id)

    last = await _last_episode(db, demo_id)
    story = await generate_demo_story_text(
        _hero_dict(hero),
        selections,
        last.episode_summary if last else None,
        await _top_tags(db, demo_id),
        language,
    )

    # Claim the episode only once the story exists
    claimed = await db.execute(
        update(DemoProfile)
        .where(DemoProfile.id == demo_id, DemoProfile.stories_used < DEMO_STORY_LIMIT)
        .values(stories_used=DemoProfile.stories_used + 1, updated_at=datetime.utcnow())
    )
    if claimed.rowcount != 1:
        await db.rollback()
        raise DemoLimitReached(await _stories_used(db, demo_id))

    episode_number = await _stories_used(db, demo_id)
    tags_used = _dedupe(list(selection_tags or []) + story["story_themes"])

    db.add(DemoEpisode(
        profile_id=demo_id,
        episode_number=episode_number,
        story_text=story["story_text"],
        episode_summary=story["episode_summary"],
        choices_json=dict(selections),
        tags_used=tags_used,
    ))
    await _bump_preferences(db, demo_id, tags_used)
    await db.commit()

    logger.info("Demo %s: episode %s written (%s tags)", demo_id, episode_number, len(tags_used))
    return {
        "story_text": story["story_text"],
        "episode_summary": story["episode_summary"],
        "story_themes": story["story_themes"],
        "tags_used": tags_used,
        "episode_number": episode_number,
        "stories_used": episode_number,
    }
