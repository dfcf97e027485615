# FILE: paperink/services/credit_service.py
"""
Credit ledger: per-user balance on `profiles.credits` plus an append-only
`credit_transactions` audit trail.

Every balance change is a single conditional UPDATE; the affected row count
decides whether the change happened. Nothing here reads a balance, computes
a new value in Python and writes it back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.models.credit_transaction import CreditTransaction
from paperink.models.profile import Profile
from paperink.models.subscription import Subscription

logger = logging.getLogger("paperink.credits")

HERO_CREDIT_COST = 2
SIGNUP_CREDITS = 5


class InsufficientCredits(Exception):
    def __init__(self, current_credits: int, required_credits: int):
        self.current_credits = current_credits
        self.required_credits = required_credits
        super().__init__(f"Insufficient credits: have {current_credits}, need {required_credits}")


@dataclass
class Reservation:
    charged: bool
    balance: Optional[int] = None


async def ensure_profile(db: AsyncSession, user_id: str, email: Optional[str] = None) -> Profile:
    """Return the user's profile, creating it with the signup grant on first use."""
    profile = await db.get(Profile, user_id)
    if profile:
        return profile

    profile = Profile(id=user_id, email=email, credits=SIGNUP_CREDITS)
    db.add(profile)
    db.add(CreditTransaction(
        user_id=user_id,
        transaction_type="signup_bonus",
        amount=SIGNUP_CREDITS,
        balance_after=SIGNUP_CREDITS,
        description="Welcome credits",
    ))
    try:
        await db.commit()
    except IntegrityError:
        # Another request provisioned it first
        await db.rollback()
        profile = await db.get(Profile, user_id)
        if profile is None:
            raise
        return profile

    logger.info("Provisioned profile %s with %s credits", user_id, SIGNUP_CREDITS)
    return profile


async def get_balance(db: AsyncSession, user_id: str) -> int:
    balance = (await db.execute(
        select(Profile.credits).where(Profile.id == user_id)
    )).scalar_one_or_none()
    return balance or 0


async def get_active_subscription(
        db: AsyncSession,
        user_id: str,
        now: Optional[datetime] = None,
) -> Optional[Subscription]:
    now = now or datetime.utcnow()
    return (await db.execute(
        select(Subscription)
        .where(
            Subscription.user_id == user_id,
            Subscription.status == "active",
            Subscription.current_period_end > now,
        )
        .order_by(Subscription.current_period_end.desc())
        .limit(1)
    )).scalar_one_or_none()


async def has_active_subscription(db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> bool:
    """Active means status 'active' AND a period end still in the future right now."""
    return await get_active_subscription(db, user_id, now) is not None


async def ensure_can_afford(db: AsyncSession, user_id: str, cost: int) -> bool:
    """
    Read-only precheck. Returns True when a subscription waives the cost,
    False when the balance covers it; raises InsufficientCredits otherwise.
    """
    if await has_active_subscription(db, user_id):
        return True
    balance = await get_balance(db, user_id)
    if balance < cost:
        raise InsufficientCredits(balance, cost)
    return False


async def deduct_credits(
        db: AsyncSession,
        user_id: str,
        cost: int,
        transaction_type: str,
        description: Optional[str] = None,
        reference_id: Optional[str] = None,
) -> Optional[int]:
    """Atomically take `cost` credits. Returns the new balance, or None if the balance was too low."""
    result = await db.execute(
        update(Profile)
        .where(Profile.id == user_id, Profile.credits >= cost)
        .values(credits=Profile.credits - cost, updated_at=datetime.utcnow())
    )
    if result.rowcount != 1:
        await db.rollback()
        return None

    balance = await get_balance(db, user_id)
    db.add(CreditTransaction(
        user_id=user_id,
        transaction_type=transaction_type,
        amount=-cost,
        balance_after=balance,
        description=description,
        reference_id=reference_id,
    ))
    await db.commit()
    return balance


async def check_and_reserve(
        db: AsyncSession,
        user_id: str,
        cost: int,
        transaction_type: str = "hero_creation",
        description: Optional[str] = None,
        reference_id: Optional[str] = None,
) -> Reservation:
    """
    Gate a paid action. An active subscription bypasses the cost; otherwise
    the cost is taken in one conditional update. Raises InsufficientCredits
    with the balance as it stood when the charge was refused.
    """
    if await has_active_subscription(db, user_id):
        return Reservation(charged=False)

    balance = await get_balance(db, user_id)
    if balance < cost:
        raise InsufficientCredits(balance, cost)

    new_balance = await deduct_credits(db, user_id, cost, transaction_type, description, reference_id)
    if new_balance is None:
        # A concurrent spend got there first
        raise InsufficientCredits(await get_balance(db, user_id), cost)

    logger.info("Charged %s credits to %s (balance %s)", cost, user_id, new_balance)
    return Reservation(charged=True, balance=new_balance)


async def add_credits(
        db: AsyncSession,
        user_id: str,
        amount: int,
        transaction_type: str = "purchase",
        description: Optional[str] = None,
        stripe_payment_intent_id: Optional[str] = None,
        reference_id: Optional[str] = None,
) -> bool:
    """
    Atomically add credits. A payment intent id that was already applied
    makes this a no-op; returns False in that case.
    """
    if amount <= 0:
        raise ValueError("amount must be positive")

    if stripe_payment_intent_id:
        existing = (await db.execute(
            select(CreditTransaction.id)
            .where(CreditTransaction.stripe_payment_intent_id == stripe_payment_intent_id)
        )).scalar_one_or_none()
        if existing:
            logger.info("Payment intent %s already credited; skipping", stripe_payment_intent_id)
            return False

    await ensure_profile(db, user_id)

    await db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(credits=Profile.credits + amount, updated_at=datetime.utcnow())
    )
    balance = await get_balance(db, user_id)
    db.add(CreditTransaction(
        user_id=user_id,
        transaction_type=transaction_type,
        amount=amount,
        balance_after=balance,
        description=description,
        reference_id=reference_id,
        stripe_payment_intent_id=stripe_payment_intent_id,
    ))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Payment intent %s credited concurrently; skipping", stripe_payment_intent_id)
        return False

    logger.info("Added %s credits to %s (balance %s)", amount, user_id, balance)
    return True
