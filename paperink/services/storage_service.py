# FILE: paperink/services/storage_service.py
"""
Signed, time-boxed URLs for private images (hero portraits, story pages).

Every URL is issued only after checking that the caller owns the character
behind the asset. Batch requests check ownership with one IN query and sign
only the owned subset; ids the caller does not own are left out silently.
"""

import asyncio
import logging
from typing import Dict, Iterable, Optional

import boto3
from botocore.config import Config
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.config import (
    HERO_PORTRAIT_BUCKET,
    SIGNED_URL_TTL_SECONDS,
    STORAGE_ACCESS_KEY_ID,
    STORAGE_ENDPOINT_URL,
    STORAGE_REGION,
    STORAGE_SECRET_ACCESS_KEY,
    STORY_IMAGE_BUCKET,
)
from paperink.models.character import Character
from paperink.models.story import Story

logger = logging.getLogger("paperink.storage")

MAX_BATCH_SIZE = 50


class AssetForbidden(Exception):
    pass


class AssetNotFound(Exception):
    pass


# Lazy initialization - only create client when needed
_s3_client = None


def get_s3_client():
    global _s3_client
    if _s3_client is None:
        _s3_client = boto3.client(
            "s3",
            endpoint_url=STORAGE_ENDPOINT_URL,
            aws_access_key_id=STORAGE_ACCESS_KEY_ID or None,
            aws_secret_access_key=STORAGE_SECRET_ACCESS_KEY or None,
            region_name=STORAGE_REGION,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
    return _s3_client


def hero_portrait_path(user_id: str, hero_id: str) -> str:
    return f"{user_id}/{hero_id}.png"


def story_page_path(user_id: str, story_id: str, page_number: int) -> str:
    return f"{user_id}/{story_id}/page-{page_number}.png"


def sign_url(bucket: str, key: str, expires_in: int = SIGNED_URL_TTL_SECONDS) -> Optional[str]:
    try:
        return get_s3_client().generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=int(expires_in),
        )
    except Exception as exc:
        logger.error("Failed to sign url %s/%s: %s", bucket, key, exc)
        return None


async def sign_hero_portrait(db: AsyncSession, user_id: str, hero_id: str) -> Dict[str, Optional[str]]:
    owner = (await db.execute(
        select(Character.user_id).where(Character.id == hero_id)
    )).scalar_one_or_none()
    if owner != user_id:
        raise AssetForbidden("Forbidden")

    path = hero_portrait_path(user_id, hero_id)
    url = await asyncio.to_thread(sign_url, HERO_PORTRAIT_BUCKET, path)
    return {"signedUrl": url, "storagePath": path}


async def sign_hero_portraits(db: AsyncSession, user_id: str, hero_ids: Iterable[str]) -> Dict[str, str]:
    requested = list(dict.fromkeys(hero_ids))[:MAX_BATCH_SIZE]
    if not requested:
        return {}

    owned_ids = set((await db.execute(
        select(Character.id).where(Character.id.in_(requested), Character.user_id == user_id)
    )).scalars().all())
    owned = [hero_id for hero_id in requested if hero_id in owned_ids]

    urls = await asyncio.gather(*[
        asyncio.to_thread(sign_url, HERO_PORTRAIT_BUCKET, hero_portrait_path(user_id, hero_id))
        for hero_id in owned
    ])
    skipped = len(requested) - len(owned)
    if skipped:
        logger.info("Omitted %s hero id(s) not owned by %s", skipped, user_id)
    return {hero_id: url for hero_id, url in zip(owned, urls) if url}


async def sign_story_page(db: AsyncSession, user_id: str, story_id: str, page_number: int) -> Dict[str, Optional[str]]:
    story = await db.get(Story, story_id)
    if not story:
        raise AssetNotFound("Story not found")

    owner = (await db.execute(
        select(Character.user_id).where(Character.id == story.character_id)
    )).scalar_one_or_none()
    if owner != user_id:
        raise AssetForbidden("Forbidden")

    path = story_page_path(user_id, story_id, page_number)
    url = await asyncio.to_thread(sign_url, STORY_IMAGE_BUCKET, path)
    return {"signedUrl": url, "storagePath": path}
