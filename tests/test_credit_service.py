"""Tests for paperink/services/credit_service.py"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from paperink.models.credit_transaction import CreditTransaction
from paperink.models.profile import Profile
from paperink.models.subscription import Subscription
from paperink.services.credit_service import (
    SIGNUP_CREDITS,
    InsufficientCredits,
    add_credits,
    check_and_reserve,
    ensure_can_afford,
    ensure_profile,
    get_balance,
    has_active_subscription,
)


async def _ledger(db, user_id):
    return (await db.execute(
        select(CreditTransaction.transaction_type, CreditTransaction.amount, CreditTransaction.balance_after)
        .where(CreditTransaction.user_id == user_id)
        .order_by(CreditTransaction.id)
    )).all()


async def test_ensure_profile_grants_signup_credits_once(db):
    await ensure_profile(db, "user-1", "parent@example.com")
    await ensure_profile(db, "user-1", "parent@example.com")

    assert await get_balance(db, "user-1") == SIGNUP_CREDITS
    assert await _ledger(db, "user-1") == [("signup_bonus", SIGNUP_CREDITS, SIGNUP_CREDITS)]


async def test_get_balance_of_unknown_user_is_zero(db):
    assert await get_balance(db, "nobody") == 0


async def test_check_and_reserve_deducts_and_records(db):
    await ensure_profile(db, "user-1")

    reservation = await check_and_reserve(db, "user-1", 2, reference_id="char-1")

    assert reservation.charged is True
    assert reservation.balance == SIGNUP_CREDITS - 2
    assert await get_balance(db, "user-1") == SIGNUP_CREDITS - 2
    assert (await _ledger(db, "user-1"))[-1] == ("hero_creation", -2, SIGNUP_CREDITS - 2)


async def test_check_and_reserve_refuses_when_balance_too_low(db):
    db.add(Profile(id="user-1", credits=1))
    await db.commit()

    with pytest.raises(InsufficientCredits) as exc_info:
        await check_and_reserve(db, "user-1", 2)

    assert exc_info.value.current_credits == 1
    assert exc_info.value.required_credits == 2
    assert await get_balance(db, "user-1") == 1
    assert await _ledger(db, "user-1") == []


async def test_balance_never_goes_negative(db):
    db.add(Profile(id="user-1", credits=3))
    await db.commit()

    await check_and_reserve(db, "user-1", 2)
    with pytest.raises(InsufficientCredits):
        await check_and_reserve(db, "user-1", 2)

    assert await get_balance(db, "user-1") == 1


async def test_active_subscription_waives_cost(db):
    db.add(Profile(id="user-1", credits=0))
    db.add(Subscription(
        user_id="user-1",
        stripe_subscription_id="sub_1",
        status="active",
        current_period_end=datetime.utcnow() + timedelta(days=10),
    ))
    await db.commit()

    assert await has_active_subscription(db, "user-1") is True
    assert await ensure_can_afford(db, "user-1", 2) is True

    reservation = await check_and_reserve(db, "user-1", 2)
    assert reservation.charged is False
    assert await get_balance(db, "user-1") == 0


async def test_expired_subscription_does_not_waive_cost(db):
    db.add(Profile(id="user-1", credits=0))
    db.add(Subscription(
        user_id="user-1",
        stripe_subscription_id="sub_1",
        status="active",
        current_period_end=datetime.utcnow() - timedelta(days=1),
    ))
    await db.commit()

    assert await has_active_subscription(db, "user-1") is False
    with pytest.raises(InsufficientCredits):
        await ensure_can_afford(db, "user-1", 2)


async def test_add_credits_is_idempotent_per_payment_intent(db):
    await ensure_profile(db, "user-1")

    first = await add_credits(db, "user-1", 10, description="Purchased 10 credits", stripe_payment_intent_id="pi_1")
    second = await add_credits(db, "user-1", 10, description="Purchased 10 credits", stripe_payment_intent_id="pi_1")

    assert first is True
    assert second is False
    assert await get_balance(db, "user-1") == SIGNUP_CREDITS + 10
    purchases = [row for row in await _ledger(db, "user-1") if row[0] == "purchase"]
    assert purchases == [("purchase", 10, SIGNUP_CREDITS + 10)]


async def test_add_credits_rejects_non_positive_amount(db):
    with pytest.raises(ValueError):
        await add_credits(db, "user-1", 0)
