# =========================================================
# FILE: /paperink/schemas/demo.py
# =========================================================

from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, validator


class DemoSessionRequest(BaseModel):
    demoId: UUID


class DemoHeroInput(BaseModel):
    heroName: str = Field(..., min_length=1, max_length=100)
    heroType: str = Field(..., min_length=1, max_length=50)
    heroTrait: str = Field(..., min_length=1, max_length=100)
    comfortItem: str = Field(..., min_length=1, max_length=100)
    ageBand: str = Field(..., min_length=1, max_length=10)
    sidekickName: Optional[str] = Field(None, max_length=100)
    sidekickArchetype: Optional[str] = Field(None, max_length=50)


class DemoHeroRequest(BaseModel):
    demoId: UUID
    hero: DemoHeroInput


class DemoSelections(BaseModel):
    level1: str = Field(..., min_length=1)
    level2: str = Field(..., min_length=1)
    level3: str = Field(..., min_length=1)


class GenerateDemoStoryRequest(BaseModel):
    demoId: UUID
    selections: DemoSelections
    selectionTags: Optional[List[str]] = None
    language: Optional[str] = Field(None, max_length=10)

    @validator("selectionTags")
    def validate_tags(cls, v: Optional[List[str]]):
        if v is None:
            return v
        if any(not t.strip() for t in v):
            raise ValueError("selectionTags cannot contain empty tags")
        return [t.strip() for t in v]
