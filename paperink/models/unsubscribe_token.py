# /paperink/models/unsubscribe_token.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime

from paperink.core.database import Base


class UnsubscribeToken(Base):
    """Single-use link token: once used_at is set the token is spent."""
    __tablename__ = "unsubscribe_tokens"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)

    # Type: all, bedtime, story
    token_type: Mapped[str] = mapped_column(String(20), default="all")

    expires_at: Mapped[datetime] = mapped_column(DateTime)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
