# /paperink/models/credit_transaction.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime

from paperink.core.database import Base


class CreditTransaction(Base):
    """Credit transactions ledger - one row per balance change."""
    __tablename__ = "credit_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)

    # Type: purchase, hero_creation, signup_bonus
    transaction_type: Mapped[str] = mapped_column(String(30))

    # Positive for credit, negative for debit
    amount: Mapped[int] = mapped_column(Integer)
    balance_after: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Reference ID (character id, package id, ...)
    reference_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Unique so a replayed checkout event cannot add credits twice
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(190), nullable=True, unique=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
