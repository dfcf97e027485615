# /paperink/models/demo_preference.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, UniqueConstraint

from paperink.core.database import Base


class DemoPreference(Base):
    """Per-guest tag score; +1 each time a story uses the tag."""
    __tablename__ = "demo_preferences"
    __table_args__ = (UniqueConstraint("profile_id", "tag", name="uq_demo_preferences_profile_tag"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(String(36), index=True)
    tag: Mapped[str] = mapped_column(String(100))
    score: Mapped[int] = mapped_column(Integer, default=0)

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
