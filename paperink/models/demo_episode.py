# /paperink/models/demo_episode.py
import uuid
from datetime import datetime
from typing import Any, List
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text, DateTime, JSON, UniqueConstraint

from paperink.core.database import Base


class DemoEpisode(Base):
    __tablename__ = "demo_episodes"
    __table_args__ = (UniqueConstraint("profile_id", "episode_number", name="uq_demo_episodes_profile_number"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    profile_id: Mapped[str] = mapped_column(String(36), index=True)

    # 1-indexed; equals the profile's stories_used right after it was written
    episode_number: Mapped[int] = mapped_column(Integer)
    story_text: Mapped[str] = mapped_column(Text)
    episode_summary: Mapped[str] = mapped_column(Text)
    choices_json: Mapped[Any] = mapped_column(JSON)
    tags_used: Mapped[List[str]] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
