# FILE: paperink/services/checkout_service.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.config import FRONTEND_URL, STRIPE_SUBSCRIPTION_PRICE_ID
from paperink.models.credit_package import CreditPackage
from paperink.models.subscription import Subscription
from paperink.services import stripe_service
from paperink.services.credit_service import get_active_subscription
from paperink.services.stripe_service import stripe_logger

logger = logging.getLogger("paperink.checkout")


class CheckoutError(Exception):
    pass


class SubscriptionNotFound(CheckoutError):
    pass


async def _customer_id_for(db: AsyncSession, user: Dict[str, Any]) -> str:
    existing = (await db.execute(
        select(Subscription.stripe_customer_id)
        .where(Subscription.user_id == user["id"], Subscription.stripe_customer_id.is_not(None))
        .order_by(Subscription.updated_at.desc())
        .limit(1)
    )).scalar_one_or_none()
    if existing:
        return existing
    return await stripe_service.create_customer(user.get("email"), user["id"])


async def _price_for_package(db: AsyncSession, package: CreditPackage) -> str:
    if package.stripe_price_id:
        return package.stripe_price_id
    price_id = await stripe_service.create_package_price(
        package.name, package.credits, package.price_amount, package.currency
    )
    package.stripe_price_id = price_id
    await db.commit()
    stripe_logger.info("Created Stripe price %s for package %s", price_id, package.id)
    return price_id


async def create_checkout(
        db: AsyncSession,
        user: Dict[str, Any],
        kind: str,
        price_id: Optional[str] = None,
        package_id: Optional[str] = None,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
) -> Dict[str, str]:
    """Create a Stripe Checkout session for a subscription or a credit package."""
    success_url = success_url or f"{FRONTEND_URL}/pricing?success=1"
    cancel_url = cancel_url or f"{FRONTEND_URL}/pricing?canceled=1"

    if kind == "subscription":
        price_id = price_id or STRIPE_SUBSCRIPTION_PRICE_ID
        if not price_id:
            raise CheckoutError("Price ID is required for subscription")
        metadata = {"user_id": user["id"], "type": "subscription"}
        extra = {"mode": "subscription", "subscription_data": {"metadata": {"user_id": user["id"]}}}
    elif kind == "credits":
        if not package_id:
            raise CheckoutError("Package ID is required for credit purchase")
        package = (await db.execute(
            select(CreditPackage).where(CreditPackage.id == package_id, CreditPackage.is_active.is_(True))
        )).scalar_one_or_none()
        if not package:
            raise CheckoutError("Invalid credit package")
        price_id = await _price_for_package(db, package)
        metadata = {
            "user_id": user["id"],
            "type": "credits",
            "package_id": package.id,
            "credits": str(package.credits),
        }
        extra = {"mode": "payment"}
    else:
        raise CheckoutError("Invalid checkout type")

    customer_id = await _customer_id_for(db, user)
    session = await stripe_service.create_checkout_session(
        customer=customer_id,
        line_items=[{"price": price_id, "quantity": 1}],
        success_url=success_url,
        cancel_url=cancel_url,
        allow_promotion_codes=True,
        billing_address_collection="required",
        metadata=metadata,
        **extra,
    )
    stripe_logger.info("Checkout session %s created for user %s (%s)", session["id"], user["id"], kind)
    return {"sessionId": session["id"], "url": session["url"]}


async def manage_subscription(db: AsyncSession, user_id: str, action: str, return_url: Optional[str] = None) -> Dict[str, Any]:
    subscription = await get_active_subscription(db, user_id)
    if not subscription:
        raise SubscriptionNotFound("No active subscription found")

    if action == "cancel":
        updated = await stripe_service.modify_subscription(
            subscription.stripe_subscription_id, cancel_at_period_end=True
        )
        subscription.cancel_at_period_end = True
        subscription.updated_at = datetime.utcnow()
        await db.commit()
        period_end = updated.get("current_period_end")
        if period_end:
            period_end_iso = datetime.fromtimestamp(period_end, tz=timezone.utc).isoformat()
        else:
            period_end_iso = subscription.current_period_end.replace(tzinfo=timezone.utc).isoformat()
        return {
            "success": True,
            "message": "Subscription will be canceled at the end of the billing period",
            "periodEnd": period_end_iso,
        }

    if action == "reactivate":
        await stripe_service.modify_subscription(
            subscription.stripe_subscription_id, cancel_at_period_end=False
        )
        subscription.cancel_at_period_end = False
        subscription.canceled_at = None
        subscription.updated_at = datetime.utcnow()
        await db.commit()
        return {"success": True, "message": "Subscription reactivated successfully"}

    if action == "portal":
        url = await stripe_service.create_portal_session(
            subscription.stripe_customer_id, return_url or f"{FRONTEND_URL}/dashboard"
        )
        return {"success": True, "url": url}

    raise CheckoutError("Invalid action")


async def list_packages(db: AsyncSession):
    return (await db.execute(
        select(CreditPackage)
        .where(CreditPackage.is_active.is_(True))
        .order_by(CreditPackage.price_amount)
    )).scalars().all()
