"""
Stripe billing service - one-off website packages sold through Stripe Checkout.

Handles: price lookup, checkout sessions, session summaries, and dispatch of
verified webhook events (customer + project creation, welcome emails).
All Stripe calls are synchronous and run via run_in_executor to avoid blocking
the asyncio event loop.
"""
import asyncio
import json
import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from dolo.config import get_settings
from dolo.services.email import send_email

logger = logging.getLogger(__name__)

PLAN_PRICES = {
    "essential": 499.99,
    "pro": 849.99,
    "premier": 1199.99,
    "private-build": 0,
}

MAINTENANCE_MONTHLY = 49.99
YEARLY_MAINTENANCE_DISCOUNT = 0.9
CHAT_ACCESS_DAYS = 183  # ~6 months

WELCOME_EMAIL_MAX_RETRIES = 3

ADD_ON_KEYS = ("googleBusiness", "accessibility", "privacy")


class CheckoutError(Exception):
    """Raised when a checkout session cannot be built from the given plan/options."""


def _get_stripe():
    """Get configured Stripe module with per-request API key. Raises if not configured."""
    import stripe
    settings = get_settings()
    if not settings.stripe_secret_key:
        raise ValueError("Stripe secret key not configured")
    stripe.api_key = settings.stripe_secret_key
    stripe.max_network_retries = 1
    return stripe


async def _run_sync(func, *args, **kwargs):
    """Run a synchronous Stripe SDK call in the default thread pool executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: func(*args, **kwargs))


def _to_dict(obj) -> dict:
    """Plain dict view of a StripeObject (or a dict already)."""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


# === PRICES ===

def _price_table() -> dict[str, dict[str, str]]:
    settings = get_settings()
    return {
        "essential": {
            "regular": settings.stripe_price_essential,
            "rush": settings.stripe_price_essential_rush,
        },
        "pro": {
            "regular": settings.stripe_price_pro,
            "rush": settings.stripe_price_pro_rush,
        },
        "maintenance": {
            "monthly": settings.stripe_price_maintenance_monthly,
            "annual": settings.stripe_price_maintenance_annual,
        },
        "googleBusiness": {"regular": settings.stripe_price_google_business},
        "accessibility": {"regular": settings.stripe_price_accessibility},
        "privacy": {"regular": settings.stripe_price_privacy},
    }


def get_price_id(plan: str, price_type: str = "regular") -> str:
    """
    Map a plan + variant to a Stripe price id. Unknown variants fall back to
    the plan's regular price; premier reuses pro prices; private builds are
    custom-priced and have no id.
    """
    prices = _price_table()
    if plan == "private-build":
        return ""
    if plan == "premier":
        plan = "pro"
    table = prices[plan] if plan in ("essential", "pro") else prices["essential"]
    return table.get(price_type) or table["regular"]


def get_plan_details(plan: str) -> dict:
    return {
        "price": PLAN_PRICES.get(plan, 0),
        "name": plan[:1].upper() + plan[1:],
    }


def _build_line_items(plan: str, price_id: str, add_ons: list[str], yearly_maintenance: bool) -> list[dict]:
    if plan == "private-build":
        return [{
            "price_data": {
                "currency": "usd",
                "product_data": {
                    "name": "Private Build Consultation",
                    "description": "Custom website development consultation",
                },
                "unit_amount": 0,
            },
            "quantity": 1,
        }]

    prices = _price_table()
    line_items = [{"price": price_id, "quantity": 1}]

    for add_on in add_ons:
        if add_on not in ADD_ON_KEYS:
            continue
        add_on_price = prices[add_on]["regular"]
        if add_on_price:
            line_items.append({"price": add_on_price, "quantity": 1})

    if "maintenance" in add_ons:
        if not yearly_maintenance:
            line_items.append({"price": prices["maintenance"]["monthly"], "quantity": 1})
        else:
            line_items.append({
                "price_data": {
                    "currency": "usd",
                    "product_data": {
                        "name": "Website Maintenance - Annual Plan",
                        "description": "12 months of website maintenance (10% discount applied)",
                    },
                    "unit_amount": round(MAINTENANCE_MONTHLY * 12 * YEARLY_MAINTENANCE_DISCOUNT * 100),
                },
                "quantity": 1,
            })

    return line_items


# === CHECKOUT ===

async def create_checkout_session(
    plan: str,
    customer: dict,
    success_url: str,
    cancel_url: str,
    rush_delivery: bool = False,
    add_ons: Optional[list[str]] = None,
    project_details: Optional[dict] = None,
) -> dict:
    """
    Create a Stripe customer and a Checkout session for a website package.
    Subscription mode is used only for monthly maintenance.

    Returns: {"session_id": str, "url": str, "customer_id": str, "error": str|None}
    """
    add_ons = add_ons or []
    project_details = project_details or {}
    price_id = get_price_id(plan, "rush" if rush_delivery else "regular")

    try:
        if not price_id and plan != "private-build":
            raise CheckoutError(f"No price ID found for plan: {plan}")

        stripe = _get_stripe()
        rush_flag = "true" if rush_delivery else "false"
        details_json = json.dumps(project_details)

        stripe_customer = await _run_sync(
            stripe.Customer.create,
            email=customer["email"],
            name=customer["name"],
            metadata={
                "company": customer.get("company") or "",
                "phone": customer.get("phone") or "",
                "plan": plan,
                "rush_delivery": rush_flag,
                "project_details": details_json,
            },
        )

        has_maintenance = "maintenance" in add_ons
        yearly_maintenance = project_details.get("yearly_maintenance") is True
        needs_subscription = has_maintenance and not yearly_maintenance

        session = await _run_sync(
            stripe.checkout.Session.create,
            customer=stripe_customer.id,
            mode="subscription" if needs_subscription else "payment",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={
                "plan": plan,
                "customer_name": customer["name"],
                "customer_email": customer["email"],
                "rush_delivery": rush_flag,
                "project_details": details_json,
                "add_ons": json.dumps(add_ons),
            },
            line_items=_build_line_items(plan, price_id, add_ons, yearly_maintenance),
        )
        logger.info("Stripe checkout session created: %s plan=%s", session.id, plan)
        return {
            "session_id": session.id,
            "url": session.url,
            "customer_id": stripe_customer.id,
            "error": None,
        }
    except Exception as e:
        logger.error("Stripe checkout creation failed: %s", str(e))
        return {"session_id": None, "url": None, "customer_id": None, "error": str(e)}


async def get_session_summary(session_id: str) -> dict:
    """
    Summarise a completed Checkout session for the success page.

    Returns: {"summary": dict|None, "error": str|None}
    """
    try:
        stripe = _get_stripe()
        session = _to_dict(await _run_sync(stripe.checkout.Session.retrieve, session_id))
    except Exception as e:
        logger.error("Stripe session retrieval failed: %s", str(e))
        return {"summary": None, "error": str(e)}

    details = session.get("customer_details") or {}
    metadata = session.get("metadata") or {}
    return {
        "summary": {
            "customer_email": details.get("email") or "",
            "customer_name": metadata.get("customer_name") or "",
            "amount_total": session.get("amount_total") or 0,
            "plan": metadata.get("plan") or "",
            "rush_delivery": metadata.get("rush_delivery") == "true",
        },
        "error": None,
    }


# === CUSTOMERS & PROJECTS ===

def generate_chat_token() -> str:
    return f"chat_{int(time.time() * 1000)}_{secrets.token_urlsafe(12)}"


async def create_customer_with_chat_access(db, stripe_customer_id: str, customer: dict):
    """Insert a Customer row with a fresh chat access token (valid ~6 months)."""
    from dolo.models.customer import Customer

    row = Customer(
        stripe_customer_id=stripe_customer_id,
        email=customer["email"],
        name=customer.get("name") or "",
        company=customer.get("company"),
        phone=customer.get("phone"),
        chat_access_token=generate_chat_token(),
        chat_access_expires_at=datetime.now(timezone.utc) + timedelta(days=CHAT_ACCESS_DAYS),
    )
    db.add(row)
    await db.flush()
    return row


async def create_project(db, customer_id, project_type: str, **fields):
    from dolo.models.customer import Project

    row = Project(customer_id=customer_id, project_type=project_type, status="pending", **fields)
    db.add(row)
    await db.flush()
    return row


# === WEBHOOK EVENTS ===

async def handle_event(event: dict, db) -> dict:
    """
    Dispatch a verified Stripe event to its handler.
    Handler failures are logged and reported, never raised.

    Returns: {"event_type": str, "handled": bool, "error": str|None}
    """
    event_type = event.get("type")
    data = (event.get("data") or {}).get("object") or {}

    logger.info("Stripe webhook received: %s", event_type, extra={"event_type": event_type})

    handlers = {
        "checkout.session.completed": _handle_checkout_completed,
        "payment_intent.succeeded": _handle_payment_succeeded,
        "customer.created": _handle_customer_created,
        "invoice.payment_succeeded": _handle_invoice_payment_succeeded,
    }
    handler = handlers.get(event_type)
    if handler is None:
        logger.info("Unhandled Stripe event type: %s", event_type)
        return {"event_type": event_type, "handled": False, "error": None}

    try:
        await handler(data, db)
    except Exception as e:
        logger.error("Webhook handler error for %s: %s", event_type, str(e))
        return {"event_type": event_type, "handled": False, "error": str(e)}

    return {"event_type": event_type, "handled": True, "error": None}


async def _handle_checkout_completed(session: dict, db) -> None:
    """Create the customer + project and send the welcome emails."""
    session_id = session.get("id")
    customer_id = session.get("customer")
    metadata = session.get("metadata")
    if not customer_id or not metadata:
        logger.error("Missing customer or metadata in session: %s", session_id)
        return

    stripe = _get_stripe()
    customer = _to_dict(await _run_sync(stripe.Customer.retrieve, customer_id))
    email = customer.get("email")
    if not email:
        logger.error("Customer email not found for session: %s", session_id)
        return

    try:
        project_details = json.loads(metadata.get("project_details") or "{}")
    except ValueError:
        logger.warning("Failed to parse project details for session: %s", session_id)
        project_details = {}

    customer_meta = customer.get("metadata") or {}
    db_customer = await create_customer_with_chat_access(db, customer_id, {
        "email": email,
        "name": customer.get("name") or metadata.get("customer_name") or "",
        "company": customer_meta.get("company") or None,
        "phone": customer_meta.get("phone") or None,
    })

    amount = (session.get("amount_total") or 0) / 100
    rush = metadata.get("rush_delivery") == "true"
    try:
        add_ons = json.loads(metadata.get("add_ons") or "[]")
    except ValueError:
        add_ons = []

    project = await create_project(
        db,
        db_customer.id,
        metadata.get("plan") or "custom",
        stripe_payment_intent_id=session.get("payment_intent"),
        total_amount=amount,
        rush_fee_applied=rush,
        add_ons={"selected": add_ons},
        project_details={
            "session_id": session_id,
            "customer_metadata": dict(customer_meta),
            "form_data": project_details,
            "payment_details": {
                "amount_total": session.get("amount_total"),
                "currency": session.get("currency"),
                "payment_status": session.get("payment_status"),
            },
        },
    )

    await send_welcome_emails(db, {
        "customer_email": email,
        "customer_name": db_customer.name,
        "project_type": metadata.get("plan"),
        "chat_access_token": db_customer.chat_access_token,
        "customer_id": str(db_customer.id),
        "project_id": str(project.id),
        "amount": amount,
        "rush_delivery": rush,
    })
    logger.info("Processed checkout completion for customer %s", str(db_customer.id)[:8])


async def _handle_payment_succeeded(payment_intent: dict, db) -> None:
    """Standalone payments (no checkout session) get the welcome emails here."""
    intent_id = payment_intent.get("id")
    customer_id = payment_intent.get("customer")
    if not customer_id:
        logger.info("No customer associated with payment intent: %s", intent_id)
        return

    stripe = _get_stripe()
    customer = _to_dict(await _run_sync(stripe.Customer.retrieve, customer_id))
    email = customer.get("email")
    if not email:
        logger.error("Customer email not found for payment intent: %s", intent_id)
        return

    sessions = _to_dict(await _run_sync(stripe.checkout.Session.list, payment_intent=intent_id, limit=1))
    if sessions.get("data"):
        logger.info("Payment intent %s belongs to a checkout session - skipping", intent_id)
        return

    await send_welcome_emails(db, {
        "customer_email": email,
        "customer_name": customer.get("name") or "Valued Customer",
        "project_type": (payment_intent.get("metadata") or {}).get("plan") or "custom",
        "customer_id": customer_id,
        "amount": (payment_intent.get("amount") or 0) / 100,
    })


async def _handle_customer_created(customer: dict, db) -> None:
    logger.info("Stripe customer created: %s", customer.get("id"))


async def _handle_invoice_payment_succeeded(invoice: dict, db) -> None:
    """Recurring (maintenance) payments get a payment confirmation."""
    customer_id = invoice.get("customer")
    if not customer_id:
        return

    stripe = _get_stripe()
    customer = _to_dict(await _run_sync(stripe.Customer.retrieve, customer_id))
    email = customer.get("email")
    if not email:
        return

    result = await send_email("payment-confirmation", email, {
        "customer_name": customer.get("name") or "Valued Customer",
        "amount": (invoice.get("amount_paid") or 0) / 100,
        "invoice_number": invoice.get("number"),
    })
    if not result["success"]:
        logger.warning("Invoice confirmation email failed for %s: %s", invoice.get("id"), result["error"])


# === WELCOME EMAILS ===

async def send_welcome_emails(db, data: dict) -> bool:
    """
    Send welcome + payment confirmation, retrying with exponential backoff.
    After the final failed attempt an EmailLog row is written for follow-up.
    """
    email = data["customer_email"]
    last_error = None

    for attempt in range(1, WELCOME_EMAIL_MAX_RETRIES + 1):
        welcome = await send_email("welcome", email, data)
        confirmation = await send_email("payment-confirmation", email, data)
        if welcome["success"] and confirmation["success"]:
            return True

        last_error = welcome["error"] or confirmation["error"]
        logger.warning("Welcome email attempt %d failed: %s", attempt, last_error)
        if attempt < WELCOME_EMAIL_MAX_RETRIES:
            await asyncio.sleep(2 ** attempt)

    logger.error("Failed to send welcome email after %d attempts", WELCOME_EMAIL_MAX_RETRIES)
    await log_email_failure(db, email, data.get("customer_id"), last_error)
    return False


async def log_email_failure(db, email: str, customer_id: Optional[str], error: Optional[str]) -> None:
    from dolo.models.email_log import EmailLog

    try:
        db.add(EmailLog(
            customer_id=customer_id,
            email_type="welcome_failed",
            recipient_email=email,
            status="failed",
            error_message=error,
        ))
        await db.flush()
    except Exception as e:
        logger.error("Failed to log email failure: %s", str(e))
