# /paperink/models/story.py
import uuid
from datetime import datetime
from typing import Optional, Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Text, DateTime, JSON

from paperink.core.database import Base


class Story(Base):
    __tablename__ = "stories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    character_id: Mapped[str] = mapped_column(String(36), index=True)

    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # SHORT | MEDIUM | LONG
    length_setting: Mapped[str] = mapped_column(String(10), default="MEDIUM")
    # A | B | C
    story_route: Mapped[str] = mapped_column(String(1), default="A")

    # At most one active story per character (kept by the lifecycle service)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Status: generating, ready, failed
    status: Mapped[str] = mapped_column(String(20), default="generating")
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    total_pages: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    current_page: Mapped[int] = mapped_column(Integer, default=1)

    # route, totalPages, ageBand as seen at creation
    story_state: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
