# /paperink/models/page.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text, DateTime, UniqueConstraint

from paperink.core.database import Base


class Page(Base):
    __tablename__ = "pages"
    __table_args__ = (UniqueConstraint("story_id", "page_number", name="uq_pages_story_page"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    story_id: Mapped[str] = mapped_column(String(36), index=True)

    # 1-indexed, contiguous up to the story's total_pages
    page_number: Mapped[int] = mapped_column(Integer)
    content: Mapped[str] = mapped_column(Text)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
