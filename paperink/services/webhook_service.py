# FILE: paperink/services/webhook_service.py
"""
Applies Stripe webhook events to the local ledger and subscription cache.

Subscription writes are full overwrites keyed by the Stripe subscription id,
so replays are harmless. Each write records the event's `created` time and
an event older than the one already applied is skipped. Events sharing a
`created` second apply in delivery order, except that nothing brings a
canceled row back: on a tie the cancellation wins.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe
from sqlalchemy import and_, select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.config import STRIPE_WEBHOOK_SECRET
from paperink.models.subscription import Subscription
from paperink.services import stripe_service
from paperink.services.credit_service import add_credits
from paperink.services.stripe_service import stripe_logger

logger = logging.getLogger("paperink.webhooks")


class WebhookError(Exception):
    pass


def _ts(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def _id(value: Any) -> Optional[str]:
    """Stripe fields may be an id string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def verify_event(payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
    """Check the signature, then return the event as a plain dict."""
    if not STRIPE_WEBHOOK_SECRET:
        raise WebhookError("Stripe webhook not configured")
    if not sig_header:
        raise WebhookError("No signature")
    try:
        stripe.Webhook.construct_event(
            payload=payload, sig_header=sig_header, secret=STRIPE_WEBHOOK_SECRET
        )
        return json.loads(payload)
    except Exception as exc:
        raise WebhookError(f"Invalid webhook: {exc}") from exc


# =========================
# HANDLERS
# =========================

async def handle_checkout_completed(db: AsyncSession, session: Dict[str, Any], event_at: Optional[datetime]):
    metadata = session.get("metadata") or {}
    user_id = metadata.get("user_id")
    kind = metadata.get("type")

    if not user_id:
        logger.error("Checkout session %s has no user_id in metadata; dropping", session.get("id"))
        return

    if kind == "credits":
        credits = int(metadata.get("credits") or 0)
        if credits <= 0:
            logger.warning("Checkout session %s carries no credits", session.get("id"))
            return
        payment_intent = _id(session.get("payment_intent")) or session.get("id")
        applied = await add_credits(
            db,
            user_id,
            credits,
            transaction_type="purchase",
            description=f"Purchased {credits} credits",
            stripe_payment_intent_id=payment_intent,
            reference_id=metadata.get("package_id"),
        )
        if applied:
            stripe_logger.info("Added %s credits to user %s (payment_intent=%s)", credits, user_id, payment_intent)
    elif kind == "subscription":
        logger.info("Subscription checkout completed for %s; state arrives with subscription events", user_id)


def _period_bounds(sub: Dict[str, Any]):
    start = sub.get("current_period_start")
    end = sub.get("current_period_end")
    if not start or not end:
        # Newer API versions only carry the period on the subscription items
        items = (sub.get("items") or {}).get("data") or []
        if items:
            start = start or items[0].get("current_period_start")
            end = end or items[0].get("current_period_end")
    return _ts(start), _ts(end)


async def _resolve_user_id(db: AsyncSession, sub: Dict[str, Any], row: Optional[Subscription]) -> Optional[str]:
    user_id = (sub.get("metadata") or {}).get("user_id")
    if user_id:
        return user_id
    if row:
        return row.user_id
    customer_id = _id(sub.get("customer"))
    if not customer_id:
        return None
    return (await db.execute(
        select(Subscription.user_id)
        .where(Subscription.stripe_customer_id == customer_id)
        .limit(1)
    )).scalar_one_or_none()


def _is_stale(row: Optional[Subscription], event_at: Optional[datetime]) -> bool:
    """
    Older events are stale. On a same-second tie a canceled row wins: an
    update never revives it, while a deletion always applies (see _set_status).
    """
    if not (row and row.last_event_at and event_at):
        return False
    if event_at < row.last_event_at:
        return True
    return event_at == row.last_event_at and row.status == "canceled"


async def handle_subscription_updated(db: AsyncSession, sub: Dict[str, Any], event_at: Optional[datetime]):
    sub_id = sub.get("id")
    row = (await db.execute(
        select(Subscription).where(Subscription.stripe_subscription_id == sub_id)
    )).scalar_one_or_none()

    user_id = await _resolve_user_id(db, sub, row)
    if not user_id:
        logger.error("Subscription %s has no user_id; dropping", sub_id)
        return

    if _is_stale(row, event_at):
        logger.info("Skipping stale event for subscription %s (%s < %s)", sub_id, event_at, row.last_event_at)
        return

    items = (sub.get("items") or {}).get("data") or []
    price = (items[0].get("price") or {}) if items else {}
    period_start, period_end = _period_bounds(sub)

    if row is None:
        row = Subscription(stripe_subscription_id=sub_id)
        db.add(row)

    row.user_id = user_id
    row.stripe_customer_id = _id(sub.get("customer"))
    row.status = sub.get("status") or "incomplete"
    row.plan_type = "monthly"
    row.price_amount = price.get("unit_amount") or 0
    row.currency = (price.get("currency") or "eur").upper()
    row.current_period_start = period_start
    row.current_period_end = period_end
    row.cancel_at_period_end = bool(sub.get("cancel_at_period_end"))
    row.canceled_at = _ts(sub.get("canceled_at"))
    row.last_event_at = event_at or row.last_event_at
    row.updated_at = datetime.utcnow()

    await db.commit()
    stripe_logger.info("Subscription %s for user %s is now %s", sub_id, user_id, row.status)


async def _set_status(db: AsyncSession, sub_id: str, event_at: Optional[datetime], **values):
    stmt = update(Subscription).where(Subscription.stripe_subscription_id == sub_id)
    if event_at:
        if values.get("status") == "canceled":
            stmt = stmt.where(or_(Subscription.last_event_at.is_(None), Subscription.last_event_at <= event_at))
        else:
            stmt = stmt.where(or_(
                Subscription.last_event_at.is_(None),
                Subscription.last_event_at < event_at,
                and_(Subscription.last_event_at == event_at, Subscription.status != "canceled"),
            ))
        values["last_event_at"] = event_at
    result = await db.execute(stmt.values(updated_at=datetime.utcnow(), **values))
    await db.commit()
    return result.rowcount


async def handle_subscription_deleted(db: AsyncSession, sub: Dict[str, Any], event_at: Optional[datetime]):
    count = await _set_status(db, sub.get("id"), event_at, status="canceled", canceled_at=datetime.utcnow())
    stripe_logger.info("Marked subscription %s as canceled (%s row)", sub.get("id"), count)


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    sub_id = _id(invoice.get("subscription"))
    if sub_id:
        return sub_id
    details = ((invoice.get("parent") or {}).get("subscription_details") or {})
    return _id(details.get("subscription"))


async def handle_invoice_payment_succeeded(db: AsyncSession, invoice: Dict[str, Any], event_at: Optional[datetime]):
    sub_id = _invoice_subscription_id(invoice)
    if not sub_id:
        return
    subscription = await stripe_service.retrieve_subscription(sub_id)
    await handle_subscription_updated(db, subscription, event_at)


async def handle_invoice_payment_failed(db: AsyncSession, invoice: Dict[str, Any], event_at: Optional[datetime]):
    stripe_logger.warning("Invoice payment failed: %s", invoice.get("id"))
    sub_id = _invoice_subscription_id(invoice)
    if sub_id:
        await _set_status(db, sub_id, event_at, status="past_due")


HANDLERS = {
    "checkout.session.completed": handle_checkout_completed,
    "customer.subscription.created": handle_subscription_updated,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_succeeded": handle_invoice_payment_succeeded,
    "invoice.payment_failed": handle_invoice_payment_failed,
}


async def process_event(db: AsyncSession, event: Dict[str, Any]) -> bool:
    """Dispatch one verified event. Returns False for event types we ignore."""
    event_type = event.get("type")
    handler = HANDLERS.get(event_type)
    stripe_logger.info("Webhook event received: %s (%s)", event_type, event.get("id"))
    if handler is None:
        logger.info("Unhandled event type: %s", event_type)
        return False

    obj = (event.get("data") or {}).get("object") or {}
    await handler(db, obj, _ts(event.get("created")))
    return True
