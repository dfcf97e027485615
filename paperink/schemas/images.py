# =========================================================
# FILE: /paperink/schemas/images.py
# =========================================================

from typing import List, Optional
from pydantic import BaseModel, Field


class ImageUrlRequest(BaseModel):
    heroId: Optional[str] = None
    heroIds: Optional[List[str]] = Field(None, max_length=50)
    storyId: Optional[str] = None
    pageNumber: Optional[int] = Field(None, ge=1)
