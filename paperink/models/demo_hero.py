# /paperink/models/demo_hero.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime

from paperink.core.database import Base


class DemoHero(Base):
    """At most one hero per demo profile."""
    __tablename__ = "demo_hero"

    profile_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    hero_name: Mapped[str] = mapped_column(String(100))
    hero_type: Mapped[str] = mapped_column(String(50))
    hero_trait: Mapped[str] = mapped_column(String(100))
    comfort_item: Mapped[str] = mapped_column(String(100))
    age_band: Mapped[str] = mapped_column(String(10))

    sidekick_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sidekick_archetype: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
