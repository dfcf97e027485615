# FILE: paperink/api/demo.py

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.database import get_db
from paperink.schemas.demo import DemoHeroRequest, DemoSessionRequest, GenerateDemoStoryRequest
from paperink.services.ai_service import InvalidAIJson
from paperink.services.demo_service import (
    DemoHeroNotFound,
    DemoLimitReached,
    generate_demo_story,
    get_demo_session,
    save_demo_hero,
)

logger = logging.getLogger("paperink.demo")

# Guest endpoints: no bearer token, the browser-generated demoId is the key
router = APIRouter(prefix="/api", tags=["demo"])


@router.post("/demo-session")
async def demo_session(req: DemoSessionRequest, db: AsyncSession = Depends(get_db)):
    return await get_demo_session(db, str(req.demoId))


@router.post("/demo-save-hero")
async def demo_save_hero(req: DemoHeroRequest, db: AsyncSession = Depends(get_db)):
    await save_demo_hero(db, str(req.demoId), req.hero.model_dump())
    logger.info("Saved demo hero for %s", req.demoId)
    return {"success": True}


@router.post("/generate-demo-story")
async def generate_demo_story_endpoint(req: GenerateDemoStoryRequest, db: AsyncSession = Depends(get_db)):
    try:
        return await generate_demo_story(
            db,
            str(req.demoId),
            req.selections.model_dump(),
            req.selectionTags,
            req.language,
        )
    except DemoLimitReached as exc:
        return JSONResponse(status_code=429, content={"error": "limit_reached", "stories_used": exc.stories_used})
    except DemoHeroNotFound:
        return JSONResponse(status_code=404, content={"error": "Hero not found"})
    except InvalidAIJson as exc:
        logger.error("Invalid demo story from AI: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Invalid AI response"})
    except RuntimeError as exc:
        logger.error("Demo story generation not configured: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Missing configuration"})
