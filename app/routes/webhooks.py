from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from app.core.errors import BillingError
from app.core.settings import BillingSettings, get_settings
from app.dependencies.billing import get_reconciliation_engine
from app.services.event_classifier import classify_event
from app.services.reconciliation import ReconciliationEngine
from app.services.webhook_signature import verify_stripe_event

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
logger = logging.getLogger(__name__)


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    settings: BillingSettings = Depends(get_settings),
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
):
    raw_body = await request.body()

    try:
        event = verify_stripe_event(
            raw_body,
            request.headers.get("stripe-signature"),
            settings.stripe_webhook_secret,
            tolerance=settings.webhook_tolerance_seconds,
        )
        transition = classify_event(event)
        result = await run_in_threadpool(engine.apply, transition)
    except BillingError as exc:
        # 5xx answers make the provider redeliver; 4xx answers do not.
        logger.error(
            "Webhook Error: %s status=%s error=%s",
            exc.__class__.__name__,
            exc.status_code,
            exc.message,
        )
        raise HTTPException(status_code=exc.status_code, detail=f"Webhook Error: {exc.message}")

    logger.info(
        "billing_webhook_processed event_id=%s type=%s action=%s user_id=%s",
        event.event_id,
        event.type,
        result.action,
        result.user_id,
    )
    return {"received": True}
