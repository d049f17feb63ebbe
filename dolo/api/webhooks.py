"""
Stripe webhook endpoint. No auth - protected by per-IP rate limiting and
Stripe signature verification.

Order of checks: rate limit (429) -> signature header present (400) ->
signature valid (400) -> dispatch. Processing errors after a valid signature
are acknowledged with 200 so Stripe does not retry them.
"""
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dolo.api.deps import client_ip, get_error_monitor, get_webhook_limiter
from dolo.config import get_settings
from dolo.database import get_db
from dolo.services import billing as billing_service
from dolo.utils.error_monitoring import ErrorMonitor
from dolo.utils.rate_limiter import WebhookRateLimiter
from dolo.utils.webhook_signatures import (
    compute_payload_hash,
    extract_customer_info,
    verify_stripe_signature,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["webhooks"])

COMPONENT = "Webhook:stripe"


@router.post("/api/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    limiter: WebhookRateLimiter = Depends(get_webhook_limiter),
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    settings = get_settings()
    identifier = f"stripe:{client_ip(request)}"

    if not limiter.allow(
        identifier,
        max_attempts=settings.webhook_rate_limit_max,
        window_ms=settings.webhook_rate_limit_window_ms,
    ):
        raise HTTPException(
            status_code=429,
            detail="Too many requests",
            headers={"Retry-After": str(limiter.retry_after_seconds(identifier))},
        )

    body = await request.body()
    sig_header = request.headers.get("stripe-signature", "")
    if not sig_header:
        logger.error("Missing Stripe signature")
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    if not settings.stripe_webhook_secret:
        monitor.log(COMPONENT, "verify", "STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=400, detail="Invalid signature")

    if not verify_stripe_signature(body, sig_header, settings.stripe_webhook_secret):
        monitor.log(
            COMPONENT, "verify", "Webhook signature verification failed",
            {"payload_hash": compute_payload_hash(body), "identifier": identifier},
        )
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        event = json.loads(body)
    except ValueError as e:
        monitor.log(COMPONENT, "parse", e)
        raise HTTPException(status_code=400, detail="Invalid payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")

    result = await billing_service.handle_event(event, db)
    if result["error"]:
        await db.rollback()
        monitor.log(
            COMPONENT, result["event_type"] or "unknown", result["error"],
            {"event_id": event.get("id"), "customer_id": extract_customer_info(event)["customer_id"]},
        )
        return {"received": True, "error": "Webhook handler failed"}

    return {"received": True, "event_type": result["event_type"], "handled": result["handled"]}
