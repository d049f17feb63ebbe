"""
Webhook signature validation - verify incoming Stripe webhooks are authentic.

Stripe signs each delivery with a header of the form:
    Stripe-Signature: t=1700000000,v1=5257a869e7ecebeda32affa62cdca3fa51cad7e77a0e56ff536d0ce8e108d8bd
where v1 = hex(HMAC-SHA256(secret, "{t}.{raw_body}")).

Every failure mode (missing parts, bad timestamp, bad hex, stale timestamp,
digest mismatch) collapses to False so callers cannot tell which check failed.
"""
import hashlib
import hmac
import logging
import re
import time
from typing import Optional, Union

logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300

TIMESTAMP_PATTERN = re.compile(r"[0-9]+")
HEX_DIGEST_PATTERN = re.compile(r"(?:[0-9a-fA-F]{2})+")


def parse_signature_header(header: str) -> dict[str, str]:
    """
    Split a `k=v,k=v` signature header into a dict.
    Pairs without "=" are dropped; a repeated key keeps its last value.
    """
    elements: dict[str, str] = {}
    for element in header.split(","):
        key, sep, value = element.partition("=")
        if not sep:
            continue
        elements[key] = value
    return elements


def _signed_payload(timestamp: Union[int, str], payload: Union[str, bytes]) -> bytes:
    # Raw bodies are signed as received, never decoded
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return f"{timestamp}.".encode("ascii") + payload


def compute_stripe_signature(
    payload: Union[str, bytes],
    secret: str,
    timestamp: Optional[int] = None,
) -> str:
    """Build a Stripe-style `t=...,v1=...` header for a payload."""
    if timestamp is None:
        timestamp = int(time.time())
    digest = hmac.new(
        secret.encode("utf-8"),
        _signed_payload(timestamp, payload),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={digest}"


def verify_stripe_signature(
    payload: Union[str, bytes],
    signature_header: str,
    secret: str,
    now: Optional[float] = None,
) -> bool:
    """
    Verify a Stripe webhook signature header against the raw payload.
    Returns True only if the digest matches and the timestamp is within
    SIGNATURE_TOLERANCE_SECONDS of now. Never raises.
    """
    try:
        elements = parse_signature_header(signature_header)
        timestamp = elements.get("t")
        v1 = elements.get("v1")
        if not timestamp or not v1:
            return False
        if not TIMESTAMP_PATTERN.fullmatch(timestamp) or not HEX_DIGEST_PATTERN.fullmatch(v1):
            return False

        current = int(now if now is not None else time.time())
        if abs(current - int(timestamp)) > SIGNATURE_TOLERANCE_SECONDS:
            logger.warning("Webhook timestamp outside tolerance")
            return False

        expected = hmac.new(
            secret.encode("utf-8"),
            _signed_payload(timestamp, payload),
            hashlib.sha256,
        ).digest()

        return hmac.compare_digest(bytes.fromhex(v1), expected)
    except Exception as e:
        logger.error("Error verifying webhook signature: %s", str(e))
        return False


def compute_payload_hash(body: Union[str, bytes]) -> str:
    """Compute SHA-256 hash of raw payload for dedup and audit."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hashlib.sha256(body).hexdigest()


def extract_customer_info(event: dict) -> dict:
    """
    Pull customer id, email and name out of a Stripe event, whatever the
    object type (checkout session, payment intent, charge, invoice).
    """
    customer_id = None
    customer_email = None
    customer_name = None

    obj = (event.get("data") or {}).get("object") or {}

    customer = obj.get("customer")
    if customer:
        customer_id = customer if isinstance(customer, str) else customer.get("id")

    if obj.get("customer_email"):
        customer_email = obj["customer_email"]

    details = obj.get("customer_details")
    if details:
        customer_email = customer_email or details.get("email")
        customer_name = details.get("name")

    billing = obj.get("billing_details")
    if billing:
        customer_email = customer_email or billing.get("email")
        customer_name = customer_name or billing.get("name")

    if obj.get("receipt_email"):
        customer_email = customer_email or obj["receipt_email"]

    return {
        "customer_id": customer_id,
        "customer_email": customer_email,
        "customer_name": customer_name,
    }
