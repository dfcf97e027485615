# FILE: paperink/services/story_service.py

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.models.character import Character
from paperink.models.page import Page
from paperink.models.story import Story

logger = logging.getLogger("paperink.stories")

LENGTH_PAGES = {"SHORT": 5, "MEDIUM": 9, "LONG": 12}
DEFAULT_LENGTH = "MEDIUM"

# Toddlers always get the short story, whatever was asked for
SHORT_ONLY_AGE_BANDS = {"1-2"}


def resolve_length(age_band: Optional[str], requested: str) -> str:
    if age_band in SHORT_ONLY_AGE_BANDS:
        return "SHORT"
    return requested if requested in LENGTH_PAGES else DEFAULT_LENGTH


def pages_for(story: Story) -> int:
    """Stored total_pages, else the count for the story's length setting."""
    if story.total_pages:
        return story.total_pages
    return LENGTH_PAGES.get(story.length_setting, LENGTH_PAGES[DEFAULT_LENGTH])


async def start_new_story(db: AsyncSession, character: Character, length: str, route: str = "A") -> Story:
    """
    Deactivate the character's other stories and insert the new active one
    in a single transaction. Page generation is enqueued by the caller.
    """
    length_setting = resolve_length(character.age_band, length)
    total_pages = LENGTH_PAGES[length_setting]

    await db.execute(
        update(Story)
        .where(Story.character_id == character.id, Story.is_active.is_(True))
        .values(is_active=False)
    )
    story = Story(
        character_id=character.id,
        length_setting=length_setting,
        story_route=route,
        is_active=True,
        status="generating",
        total_pages=total_pages,
        current_page=1,
        story_state={"route": route, "totalPages": total_pages, "ageBand": character.age_band},
    )
    db.add(story)
    await db.commit()

    if length_setting != length:
        logger.info("Story %s clamped from %s to %s for age band %s", story.id, length, length_setting, character.age_band)
    logger.info("Started story %s for character %s (%s pages, route %s)", story.id, character.id, total_pages, route)
    return story


async def get_story_with_pages(db: AsyncSession, story_id: str):
    story = await db.get(Story, story_id)
    if not story:
        return None, []
    pages = (await db.execute(
        select(Page).where(Page.story_id == story_id).order_by(Page.page_number)
    )).scalars().all()
    return story, pages
