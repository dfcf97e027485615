# =========================================================
# FILE: /paperink/schemas/story.py
# =========================================================

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict


class StartStoryRequest(BaseModel):
    characterId: UUID
    length: Literal["SHORT", "MEDIUM", "LONG"]
    storyRoute: Literal["A", "B", "C"] = "A"


class GeneratePageRequest(BaseModel):
    storyId: UUID


class PageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    page_number: int
    content: str
    image_url: Optional[str] = None


class StoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    character_id: str
    title: Optional[str] = None
    length_setting: str
    story_route: str
    is_active: bool
    status: str
    error_message: Optional[str] = None
    total_pages: Optional[int] = None
    current_page: int
    created_at: datetime
    pages: List[PageResponse] = []
