from __future__ import annotations

import logging
import os
from datetime import datetime

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from api_errors import ApiError
from auth import get_db
from models import Invoice
from payments import (
    FAILED_EVENTS,
    INVOICE_STATUS_FAILED,
    INVOICE_STATUS_PAID,
    PAID_EVENTS,
    WebhookSignatureError,
    construct_webhook_event,
)

router = APIRouter(prefix="/api/webhook", tags=["Webhooks"])
logger = logging.getLogger(__name__)


def _invoice_for_session(db: Session, session_id: str | None) -> Invoice | None:
    if not session_id:
        return None
    return db.execute(
        select(Invoice).where(Invoice.stripe_checkout_session_id == session_id)
    ).scalar_one_or_none()


def _apply_event(db: Session, event: dict) -> None:
    event_type = event.get("type")
    if event_type not in PAID_EVENTS and event_type not in FAILED_EVENTS:
        logger.debug("ignoring stripe event type=%s", event_type)
        return

    session = (event.get("data") or {}).get("object") or {}
    invoice = _invoice_for_session(db, session.get("id"))
    if not invoice:
        logger.warning("invoice not found for session %s (event=%s)", session.get("id"), event_type)
        return

    if event_type in PAID_EVENTS:
        invoice.status = INVOICE_STATUS_PAID
        invoice.paid_at = datetime.utcnow()
        invoice.stripe_payment_intent_id = session.get("payment_intent") or None
        db.commit()
        logger.info("invoice %s marked as paid (event=%s)", invoice.invoice_number, event_type)
    else:
        invoice.status = INVOICE_STATUS_FAILED
        db.commit()
        logger.info("invoice %s payment failed", invoice.invoice_number)


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
):
    # Only the body read and signature check run on the event loop.
    secret = os.getenv("STRIPE_WEBHOOK_SECRET", "")
    if not stripe_signature or not secret:
        logger.error("stripe webhook rejected: missing signature or webhook secret")
        raise ApiError(
            status_code=400,
            code="webhook_error",
            message="Missing signature or webhook secret",
            field="Stripe-Signature",
        )

    body = await request.body()
    try:
        event = construct_webhook_event(body, stripe_signature, secret)
    except WebhookSignatureError as exc:
        logger.warning("stripe webhook signature verification failed: %s", exc)
        raise ApiError(
            status_code=400,
            code="webhook_error",
            message=f"Webhook Error: {exc}",
            field="Stripe-Signature",
        )

    await run_in_threadpool(_apply_event, db, event)
    return {"received": True}
