# FILE: paperink/services/stripe_service.py
"""Thin async wrappers around the (blocking) Stripe SDK plus the billing audit log."""

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional

import stripe

from paperink.core.config import STRIPE_SECRET_KEY

LOG_DIR = os.getenv("LOG_DIR", "logs")
os.makedirs(LOG_DIR, exist_ok=True)
stripe_logger = logging.getLogger("paperink_stripe")
if not stripe_logger.handlers:
    handler = logging.FileHandler(os.path.join(LOG_DIR, "stripe.log"))
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    stripe_logger.setLevel(logging.INFO)
    stripe_logger.addHandler(handler)

if STRIPE_SECRET_KEY:
    stripe.api_key = STRIPE_SECRET_KEY


class StripeNotConfigured(RuntimeError):
    pass


def to_plain(obj: Any) -> Dict[str, Any]:
    """StripeObject -> plain nested dict."""
    if obj is None:
        return {}
    if isinstance(obj, dict) and not isinstance(obj, stripe.StripeObject):
        return obj
    return json.loads(str(obj))


def _require_key():
    if not stripe.api_key:
        raise StripeNotConfigured("Stripe is not configured")


async def retrieve_subscription(subscription_id: str) -> Dict[str, Any]:
    _require_key()
    sub = await asyncio.to_thread(stripe.Subscription.retrieve, subscription_id)
    return to_plain(sub)


async def modify_subscription(subscription_id: str, **params) -> Dict[str, Any]:
    _require_key()
    sub = await asyncio.to_thread(stripe.Subscription.modify, subscription_id, **params)
    return to_plain(sub)


async def create_customer(email: Optional[str], user_id: str) -> str:
    _require_key()
    customer = await asyncio.to_thread(
        stripe.Customer.create,
        email=email,
        metadata={"user_id": user_id},
    )
    return customer["id"]


async def create_package_price(name: str, credits: int, unit_amount: int, currency: str) -> str:
    _require_key()
    product = await asyncio.to_thread(
        stripe.Product.create,
        name=name,
        description=f"{credits} credits for Paper & Ink Stories",
    )
    price = await asyncio.to_thread(
        stripe.Price.create,
        product=product["id"],
        unit_amount=unit_amount,
        currency=currency.lower(),
    )
    return price["id"]


async def create_checkout_session(**params) -> Dict[str, Any]:
    _require_key()
    session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
    return {"id": session["id"], "url": session["url"]}


async def create_portal_session(customer_id: str, return_url: str) -> str:
    _require_key()
    session = await asyncio.to_thread(
        stripe.billing_portal.Session.create,
        customer=customer_id,
        return_url=return_url,
    )
    return session["url"]
