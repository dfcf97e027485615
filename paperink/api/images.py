# FILE: paperink/api/images.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.api.deps import get_current_user
from paperink.core.database import get_db
from paperink.schemas.images import ImageUrlRequest
from paperink.services.storage_service import (
    AssetForbidden,
    AssetNotFound,
    sign_hero_portrait,
    sign_hero_portraits,
    sign_story_page,
)

router = APIRouter(prefix="/api", tags=["images"])


@router.post("/get-image-url")
async def get_image_url(
        req: ImageUrlRequest,
        user=Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    try:
        if req.heroIds is not None:
            return {"urls": await sign_hero_portraits(db, user["id"], req.heroIds)}
        if req.heroId:
            return await sign_hero_portrait(db, user["id"], req.heroId)
        if req.storyId and req.pageNumber:
            return await sign_story_page(db, user["id"], req.storyId, req.pageNumber)
    except AssetNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except AssetForbidden:
        raise HTTPException(status_code=403, detail="Forbidden")

    raise HTTPException(status_code=400, detail="Invalid request")
