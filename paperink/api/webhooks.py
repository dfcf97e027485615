# FILE: paperink/api/webhooks.py

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.database import get_db
from paperink.services.stripe_service import stripe_logger
from paperink.services.webhook_service import WebhookError, process_event, verify_event

logger = logging.getLogger("paperink.webhooks")

router = APIRouter(prefix="/api", tags=["webhooks"])


@router.post("/stripe-webhook")
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Stripe webhook: verifies the signature before touching the payload."""
    payload = await request.body()
    try:
        event = verify_event(payload, request.headers.get("stripe-signature"))
    except WebhookError as exc:
        stripe_logger.warning("Rejected webhook: %s", exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    try:
        await process_event(db, event)
    except Exception as exc:
        stripe_logger.error("Webhook %s (%s) failed", event.get("type"), event.get("id"), exc_info=exc)
        await db.rollback()
        return JSONResponse(status_code=400, content={"error": "Webhook handler failed"})

    return {"received": True}
