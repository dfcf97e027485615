# FILE: paperink/api/billing.py
"""Credits, credit packages, Stripe Checkout and subscription management."""

import logging
from typing import List

import stripe
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.api.deps import get_current_user
from paperink.core.database import get_db
from paperink.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    CreditPackageResponse,
    CreditsResponse,
    ManageSubscriptionRequest,
    SubscriptionResponse,
)
from paperink.services.checkout_service import (
    CheckoutError,
    create_checkout,
    list_packages,
    manage_subscription,
)
from paperink.services.credit_service import get_active_subscription, get_balance
from paperink.services.stripe_service import StripeNotConfigured, stripe_logger

logger = logging.getLogger("paperink.billing")

router = APIRouter(prefix="/api", tags=["billing"])


@router.get("/credits", response_model=CreditsResponse)
async def get_credits(user=Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Current balance plus the cached subscription, for the pricing screen."""
    subscription = await get_active_subscription(db, user["id"])
    return CreditsResponse(
        credits=await get_balance(db, user["id"]),
        has_active_subscription=subscription is not None,
        subscription=SubscriptionResponse.model_validate(subscription) if subscription else None,
    )


@router.get("/credit-packages", response_model=List[CreditPackageResponse])
async def get_credit_packages(db: AsyncSession = Depends(get_db)):
    return [CreditPackageResponse.model_validate(p) for p in await list_packages(db)]


@router.post("/create-checkout", response_model=CheckoutResponse)
async def create_checkout_session(
        req: CheckoutRequest,
        user=Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    try:
        return await create_checkout(
            db,
            user,
            req.type,
            price_id=req.priceId,
            package_id=req.packageId,
            success_url=req.successUrl,
            cancel_url=req.cancelUrl,
        )
    except (CheckoutError, StripeNotConfigured) as exc:
        logger.warning("Checkout rejected for %s: %s", user["id"], exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except stripe.StripeError as exc:
        stripe_logger.error("Stripe session creation failed", exc_info=exc)
        return JSONResponse(status_code=400, content={"error": getattr(exc, "user_message", None) or "Payment provider error"})


@router.post("/manage-subscription")
async def manage_subscription_action(
        req: ManageSubscriptionRequest,
        user=Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    try:
        return await manage_subscription(db, user["id"], req.action, req.returnUrl)
    except (CheckoutError, StripeNotConfigured) as exc:
        logger.warning("Subscription %s rejected for %s: %s", req.action, user["id"], exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except stripe.StripeError as exc:
        stripe_logger.error("Subscription %s failed", req.action, exc_info=exc)
        return JSONResponse(status_code=400, content={"error": getattr(exc, "user_message", None) or "Payment provider error"})
