# FILE: paperink/api/heroes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.api.deps import get_current_user
from paperink.core.database import get_db
from paperink.models.character import Character
from paperink.schemas.hero import CreateHeroRequest, CharacterResponse
from paperink.services.credit_service import (
    HERO_CREDIT_COST,
    InsufficientCredits,
    check_and_reserve,
    ensure_can_afford,
)
from paperink.services.rate_limit_service import (
    MAX_HEROES_PER_WEEK,
    RateLimitExceeded,
    check_creation_allowed,
    record_creation,
)

logger = logging.getLogger("paperink.heroes")

router = APIRouter(prefix="/api", tags=["heroes"])


def _insufficient_credits(exc: InsufficientCredits) -> JSONResponse:
    return JSONResponse(
        status_code=402,
        content={
            "error": "insufficient_credits",
            "message": f"Creating a hero costs {exc.required_credits} credits. You have {exc.current_credits}.",
            "current_credits": exc.current_credits,
            "required_credits": exc.required_credits,
        },
    )


@router.post("/create-hero")
async def create_hero(
        req: CreateHeroRequest,
        user=Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    user_id = user["id"]

    try:
        current_count = await check_creation_allowed(db, user_id)
    except RateLimitExceeded as exc:
        logger.info("Hero limit reached for %s (%s/%s)", user_id, exc.current_count, exc.max_allowed)
        return JSONResponse(
            status_code=429,
            content={
                "error": "limit_reached",
                "message": str(exc),
                "current_count": exc.current_count,
                "max_allowed": exc.max_allowed,
                "resets_in_days": exc.resets_in_days,
            },
        )

    try:
        await ensure_can_afford(db, user_id, HERO_CREDIT_COST)
    except InsufficientCredits as exc:
        logger.info("Insufficient credits for %s (%s < %s)", user_id, exc.current_credits, exc.required_credits)
        return _insufficient_credits(exc)

    character = Character(
        user_id=user_id,
        name=req.name,
        archetype=req.archetype,
        age_band=req.age_band or "6-8",
        traits=req.traits,
        icon=req.icon or req.archetype,
        sidekick_name=req.sidekick_name or None,
        sidekick_archetype=req.sidekick_archetype or None,
        preferred_language=req.preferred_language or user.get("language") or "en",
    )
    db.add(character)
    await db.commit()
    character_id = character.id
    payload = CharacterResponse.model_validate(character).model_dump(mode="json")

    try:
        await check_and_reserve(
            db,
            user_id,
            HERO_CREDIT_COST,
            transaction_type="hero_creation",
            description=f"Created hero {req.name}",
            reference_id=character_id,
        )
    except InsufficientCredits as exc:
        # Lost the race for the credits: drop the uncharged character
        await db.execute(delete(Character).where(Character.id == character_id))
        await db.commit()
        logger.warning("Rolled back character %s: credit deduction failed", character_id)
        return _insufficient_credits(exc)
    except Exception:
        logger.exception("Credit deduction crashed for character %s", character_id)
        await db.rollback()
        await db.execute(delete(Character).where(Character.id == character_id))
        await db.commit()
        raise HTTPException(status_code=500, detail="Failed to create character")

    await record_creation(db, user_id)
    logger.info("Character %s created for user %s", character_id, user_id)

    return {
        "success": True,
        "character": payload,
        "remaining_creations": MAX_HEROES_PER_WEEK - current_count - 1,
    }
