# /paperink/models/subscription.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, DateTime

from paperink.core.database import Base


class Subscription(Base):
    """Local cache of a Stripe subscription. Written by the webhook and subscription management only."""
    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)

    stripe_subscription_id: Mapped[str] = mapped_column(String(190), unique=True, index=True)
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(190), nullable=True, index=True)

    # Status: active, trialing, past_due, canceled, incomplete, unpaid, ...
    status: Mapped[str] = mapped_column(String(30), default="incomplete")
    plan_type: Mapped[str] = mapped_column(String(30), default="monthly")

    # Price in cents
    price_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="EUR")

    current_period_start: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # `created` of the newest Stripe event applied to this row
    last_event_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

