# /paperink/models/hero_creation_log.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Index

from paperink.core.database import Base


class HeroCreationLog(Base):
    """Append-only; one row per successful hero creation."""
    __tablename__ = "hero_creation_log"
    __table_args__ = (Index("ix_hero_creation_log_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
