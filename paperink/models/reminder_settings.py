# /paperink/models/reminder_settings.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, DateTime

from paperink.core.database import Base


class ReminderSettings(Base):
    __tablename__ = "reminder_settings"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)

    email_opt_in: Mapped[bool] = mapped_column(Boolean, default=False)
    bedtime_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    story_enabled: Mapped[bool] = mapped_column(Boolean, default=False)

    # Local wall-clock "HH:MM" in the user's timezone
    bedtime_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    story_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
