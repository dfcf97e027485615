# =========================================================
# FILE: /paperink/schemas/hero.py
# =========================================================

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, validator

AGE_BANDS = ("1-2", "3-5", "6-8", "9-12")


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class CreateHeroRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    archetype: str = Field(..., min_length=1, max_length=50)
    age_band: Optional[str] = "6-8"
    traits: List[str] = Field(..., min_length=1, max_length=5)
    icon: Optional[str] = Field(None, max_length=50)
    sidekick_name: Optional[str] = Field(None, max_length=100)
    sidekick_archetype: Optional[str] = Field(None, max_length=50)
    preferred_language: Optional[str] = Field(None, max_length=10)

    @validator("name", "archetype", "icon", "sidekick_name", "sidekick_archetype", "preferred_language", pre=True)
    def strip_text(cls, v):
        return _strip(v)

    @validator("age_band")
    def validate_age_band(cls, v: Optional[str]):
        v = (v or "6-8").strip()
        if v not in AGE_BANDS:
            raise ValueError(f"age_band must be one of {list(AGE_BANDS)}")
        return v

    @validator("traits")
    def validate_traits(cls, v: List[str]):
        cleaned = [t.strip() for t in v]
        for trait in cleaned:
            if not trait:
                raise ValueError("traits cannot be empty")
            if len(trait) > 50:
                raise ValueError("each trait must be at most 50 characters")
        return cleaned


class CharacterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    archetype: str
    age_band: str
    traits: List[str]
    icon: Optional[str] = None
    sidekick_name: Optional[str] = None
    sidekick_archetype: Optional[str] = None
    preferred_language: str
    last_summary: Optional[str] = None
    created_at: datetime
