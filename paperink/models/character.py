# /paperink/models/character.py
import uuid
from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, JSON

from paperink.core.database import Base


class Character(Base):
    """A child's hero. Owned by exactly one user."""
    __tablename__ = "characters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), index=True)

    name: Mapped[str] = mapped_column(String(100))
    archetype: Mapped[str] = mapped_column(String(50))

    # Age band: 1-2, 3-5, 6-8, 9-12
    age_band: Mapped[str] = mapped_column(String(10), default="6-8")
    traits: Mapped[List[str]] = mapped_column(JSON, default=list)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    sidekick_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sidekick_archetype: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    preferred_language: Mapped[str] = mapped_column(String(10), default="en")
    last_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
