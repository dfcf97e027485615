# /paperink/models/demo_profile.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime

from paperink.core.database import Base


class DemoProfile(Base):
    """Anonymous guest trying the app; the id is generated by the browser."""
    __tablename__ = "demo_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    stories_used: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
