# FILE: paperink/api/stories.py

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.api.deps import get_current_user
from paperink.core.database import get_db
from paperink.models.character import Character
from paperink.models.story import Story
from paperink.schemas.story import (
    GeneratePageRequest,
    PageResponse,
    StartStoryRequest,
    StoryResponse,
)
from paperink.services.page_generator import (
    PageGenerationError,
    generate_missing_pages,
    run_generation_job,
)
from paperink.services.story_service import get_story_with_pages, start_new_story

logger = logging.getLogger("paperink.stories")

router = APIRouter(prefix="/api", tags=["stories"])


async def _owned_story(db: AsyncSession, story_id: str, user_id: str) -> Story:
    story = await db.get(Story, story_id)
    if not story:
        raise HTTPException(status_code=404, detail="Story not found")
    owner = (await db.execute(
        select(Character.user_id).where(Character.id == story.character_id)
    )).scalar_one_or_none()
    if owner != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return story


@router.post("/start-story-generation")
async def start_story_generation(
        req: StartStoryRequest,
        background_tasks: BackgroundTasks,
        user=Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    character = await db.get(Character, str(req.characterId))
    if not character:
        raise HTTPException(status_code=404, detail="Character not found")
    if character.user_id != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")

    story = await start_new_story(db, character, req.length, req.storyRoute)

    # Job id is the story id; clients poll GET /api/stories/{id}
    background_tasks.add_task(run_generation_job, story.id)

    return {"storyId": story.id, "status": "generating", "totalPages": story.total_pages}


@router.post("/generate-page")
async def generate_page(
        req: GeneratePageRequest,
        user=Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    story = await _owned_story(db, str(req.storyId), user["id"])

    try:
        result = await generate_missing_pages(db, story.id)
    except PageGenerationError as exc:
        logger.error("generate-page failed for %s: %s", req.storyId, exc)
        return JSONResponse(status_code=500, content={"error": "Failed to generate pages"})

    return {
        "status": "ok",
        "generatedPages": result.generated_pages,
        "totalPages": result.total_pages,
    }


@router.get("/stories/{story_id}", response_model=StoryResponse)
async def get_story(
        story_id: str,
        user=Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    await _owned_story(db, story_id, user["id"])
    story, pages = await get_story_with_pages(db, story_id)

    response = StoryResponse.model_validate(story)
    response.pages = [PageResponse.model_validate(p) for p in pages]
    return response
