# FILE: paperink/api/reminders.py

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from paperink.core.config import CRON_SECRET
from paperink.core.database import get_db
from paperink.services.email_service import EmailNotConfigured
from paperink.services.reminder_service import (
    disable_link_limiter,
    disable_reminders,
    render_page,
    send_due_reminders,
)

logger = logging.getLogger("paperink.reminders")

router = APIRouter(prefix="/api", tags=["reminders"])


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.get("/disable-reminders", response_class=HTMLResponse)
async def disable_reminders_link(
        request: Request,
        token: Optional[str] = None,
        db: AsyncSession = Depends(get_db),
):
    if not disable_link_limiter.allow(_client_ip(request)):
        return HTMLResponse(render_page("Too many requests. Please try again in a minute.", False), status_code=429)

    try:
        outcome = await disable_reminders(db, token)
    except Exception:
        logger.exception("Disable reminders failed")
        return HTMLResponse(render_page("An error occurred. Please try again.", False), status_code=500)

    if not outcome.success:
        logger.info("Disable link rejected (%s): %s", outcome.status_code, outcome.message)
    return HTMLResponse(render_page(outcome.message, outcome.success), status_code=outcome.status_code)


@router.post("/send-reminders")
async def send_reminders(request: Request, db: AsyncSession = Depends(get_db)):
    """Called by the scheduler every 10 minutes with `Authorization: Bearer <CRON_SECRET>`."""
    auth = request.headers.get("authorization") or ""
    supplied = auth[7:] if auth.lower().startswith("bearer ") else ""
    if not CRON_SECRET or not secrets.compare_digest(supplied, CRON_SECRET):
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        report = await send_due_reminders(db)
    except EmailNotConfigured as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    return {
        "sent": report.sent,
        "checked": report.checked,
        "processed": report.processed,
        "errors": report.errors,
    }
