# FILE: paperink/api/questions.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.api.deps import get_current_user
from paperink.core.database import get_db
from paperink.models.character import Character
from paperink.models.story import Story
from paperink.schemas.questions import HeroProfileRequest
from paperink.services.ai_service import InvalidAIJson, generate_questions

logger = logging.getLogger("paperink.questions")

router = APIRouter(prefix="/api", tags=["questions"])


async def _character_profile(db: AsyncSession, req: HeroProfileRequest, user_id: str) -> dict:
    character = await db.get(Character, str(req.characterId))
    if not character:
        raise HTTPException(status_code=404, detail="Character not found")
    if character.user_id != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")

    stories = (await db.execute(
        select(func.count(Story.id)).where(Story.character_id == character.id, Story.status == "ready")
    )).scalar()

    return {
        "heroName": character.name,
        "heroType": character.archetype,
        "ageBand": character.age_band,
        "traits": character.traits or [],
        "comfortItem": req.comfortItem,
        "sidekickName": character.sidekick_name,
        "lastSummary": character.last_summary,
        "topTags": req.topTags,
        "language": character.preferred_language or req.language,
        "storiesCount": stories or 0,
    }


@router.post("/generate-questions")
async def generate_story_questions(
        req: HeroProfileRequest,
        user=Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    if req.characterId:
        profile = await _character_profile(db, req, user["id"])
    else:
        profile = req.model_dump(exclude={"characterId"})

    try:
        return await generate_questions(profile)
    except InvalidAIJson as exc:
        logger.error("Invalid questions format from AI: %s", exc)
        return JSONResponse(status_code=500, content={"error": {"message": "Invalid questions format from AI"}})
    except RuntimeError as exc:
        logger.error("Question generation not configured: %s", exc)
        return JSONResponse(status_code=500, content={"error": {"message": "Missing API configuration"}})
