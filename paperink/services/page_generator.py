# FILE: paperink/services/page_generator.py
"""
Fills in the missing pages of a story.

Page text is a pure function of (hero name, age band, page number, total
pages, route), so running the generator twice always yields the same pages.
Pages are written with one batched insert that ignores (story_id,
page_number) conflicts: concurrent or repeated runs never duplicate a page
and never overwrite one that already exists.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List

from sqlalchemy import select, update, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.database import SessionLocal
from paperink.models.character import Character
from paperink.models.page import Page
from paperink.models.story import Story
from paperink.services.story_service import pages_for
from paperink.services.text_sanitizer import sanitize_story_text

logger = logging.getLogger("paperink.page_generator")


class PageGenerationError(Exception):
    pass


@dataclass
class GenerationResult:
    generated_pages: int
    total_pages: int


# =========================
# TEXT SYNTHESIS
# =========================

ROUTES: Dict[str, Dict[str, object]] = {
    "A": {
        "place": "the moonlit garden",
        "guide": "a wise old owl",
        "details": [
            "Fireflies drew slow golden loops above the flowers.",
            "The roses had folded their petals, as if they were yawning too.",
            "A smooth stone path glowed softly under {name}'s feet.",
            "Somewhere a cricket sang the same sleepy note again and again.",
            "The grass was cool and soft — like a blanket fresh from the line.",
            "The owl blinked kindly and said the garden had saved its quietest corner for {name}.",
        ],
    },
    "B": {
        "place": "the starlit river",
        "guide": "a gentle otter",
        "details": [
            "The water shimmered with the reflection of a thousand tiny stars.",
            "A little wooden boat rocked slowly by the bank, waiting for {name}.",
            "Reeds whispered against each other in the warm night air.",
            "The otter floated on its back and pointed out the brightest star.",
            "Each ripple carried the boat a little further — slow and steady.",
            "{name} trailed one hand in the water and felt it, cool and calm.",
        ],
    },
    "C": {
        "place": "the cloud kingdom",
        "guide": "a soft cloud bear",
        "details": [
            "Towers of cloud glowed pink and lavender in the last of the sunset.",
            "The air smelled of honey and warm vanilla.",
            "A cloud bridge bounced gently with every step {name} took.",
            "The cloud bear hummed a lullaby that sounded like distant rain.",
            "Pillows of mist gathered in a circle — each softer than the last.",
            "Tiny dream-stars twinkled in the ceiling of the sky.",
        ],
    },
}

# Body sentences per page, by age band
SENTENCES_PER_AGE_BAND = {"1-2": 2, "3-5": 3, "6-8": 4, "9-12": 5}

OPENINGS = {
    "SETUP": "As the evening grew quiet, {name} set off toward {place}.",
    "JOURNEY": "Deeper in {place}, {name} walked beside {guide}.",
    "WINDDOWN": "{name} found a warm, cozy spot in {place} and sat down slowly.",
}

FINAL_CLOSING = "{name} closed both eyes, safe and warm, and drifted gently off to sleep. Goodnight, {name}."
TRANSITION_CLOSING = "And so {name} wandered on, wondering what the next page would bring."


def story_phase(page_number: int, total_pages: int) -> str:
    progress = page_number / total_pages
    if progress > 0.6:
        return "WINDDOWN"
    if progress > 0.2:
        return "JOURNEY"
    return "SETUP"


def build_page_text(name: str, age_band: str, page_number: int, total_pages: int, route: str) -> str:
    flavor = ROUTES.get(route) or ROUTES["A"]
    details: List[str] = flavor["details"]  # type: ignore[assignment]
    count = SENTENCES_PER_AGE_BAND.get(age_band, 4)
    fields = {"name": name, "place": flavor["place"], "guide": flavor["guide"]}

    opening = OPENINGS[story_phase(page_number, total_pages)].format(**fields)
    body = [details[(page_number + i) % len(details)].format(**fields) for i in range(count)]
    closing = (FINAL_CLOSING if page_number == total_pages else TRANSITION_CLOSING).format(**fields)

    return sanitize_story_text(" ".join([opening, *body]) + "\n\n" + closing)


# =========================
# PERSISTENCE
# =========================

def _insert_ignoring_duplicates(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(Page).on_conflict_do_nothing(index_elements=["story_id", "page_number"])
    if dialect == "sqlite":
        return sqlite_insert(Page).on_conflict_do_nothing(index_elements=["story_id", "page_number"])
    if dialect in ("mysql", "mariadb"):
        return insert(Page).prefix_with("IGNORE")
    return insert(Page)


async def _mark_failed(db: AsyncSession, story_id: str, message: str) -> None:
    await db.execute(
        update(Story)
        .where(Story.id == story_id)
        .values(status="failed", error_message=message[:500], updated_at=datetime.utcnow())
    )
    await db.commit()


async def generate_missing_pages(db: AsyncSession, story_id: str) -> GenerationResult:
    story = await db.get(Story, story_id)
    if not story:
        raise PageGenerationError(f"Story {story_id} not found")

    character = await db.get(Character, story.character_id)
    if not character:
        await _mark_failed(db, story_id, "Character not found")
        raise PageGenerationError(f"Character for story {story_id} not found")

    total_pages = pages_for(story)
    route = story.story_route or (story.story_state or {}).get("route") or "A"
    title = story.title or f"{character.name}'s Bedtime Adventure"

    existing = set((await db.execute(
        select(Page.page_number).where(Page.story_id == story_id)
    )).scalars().all())

    now = datetime.utcnow()
    rows = [
        {
            "story_id": story_id,
            "page_number": n,
            "content": build_page_text(character.name, character.age_band, n, total_pages, route),
            "created_at": now,
        }
        for n in range(1, total_pages + 1)
        if n not in existing
    ]

    try:
        if rows:
            await db.execute(_insert_ignoring_duplicates(db), rows)
        await db.execute(
            update(Story)
            .where(Story.id == story_id)
            .values(
                status="ready",
                total_pages=total_pages,
                title=title,
                error_message=None,
                updated_at=now,
            )
        )
        await db.commit()
    except SQLAlchemyError as exc:
        logger.error("Failed to save pages for story %s: %s", story_id, exc)
        await db.rollback()
        await _mark_failed(db, story_id, "Failed to save pages")
        raise PageGenerationError("Failed to save pages") from exc

    logger.info("Story %s: generated %s page(s), %s total", story_id, len(rows), total_pages)
    return GenerationResult(generated_pages=len(rows), total_pages=total_pages)


async def run_generation_job(story_id: str) -> None:
    """Background job enqueued by start-story-generation. The story id is the job id."""
    async with SessionLocal() as db:
        try:
            await generate_missing_pages(db, story_id)
        except PageGenerationError as exc:
            logger.error("Generation job %s failed: %s", story_id, exc)
        except Exception:
            logger.exception("Generation job %s crashed", story_id)
            await db.rollback()
            await _mark_failed(db, story_id, "Unexpected generation error")
