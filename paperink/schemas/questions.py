# =========================================================
# FILE: /paperink/schemas/questions.py
# =========================================================

from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, validator


class HeroProfileRequest(BaseModel):
    # With characterId the hero profile is loaded from the database
    characterId: Optional[UUID] = None
    heroName: Optional[str] = Field(None, min_length=1)
    heroType: Optional[str] = Field(None, min_length=1)
    ageBand: str = "3-5"
    traits: List[str] = Field(default_factory=list)
    comfortItem: str = "blanket"
    sidekickName: Optional[str] = None
    lastSummary: Optional[str] = None
    topTags: List[str] = Field(default_factory=list)
    language: str = "en"

    @validator("heroType", always=True)
    def require_hero(cls, v, values):
        if values.get("characterId") is None and (not values.get("heroName") or not v):
            raise ValueError("heroName and heroType are required without characterId")
        return v
