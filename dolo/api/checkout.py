"""
Checkout API - hosted Stripe Checkout for website packages.

POST /api/checkout          - direct checkout from the pricing page
POST /api/start             - start-form submission (project brief + plan) -> checkout URL
GET  /api/checkout/session  - summary of a finished session for the success page
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from dolo.api.deps import get_error_monitor, read_json_body
from dolo.config import get_settings
from dolo.services import billing as billing_service
from dolo.utils.error_monitoring import ErrorMonitor, log_form_error
from dolo.utils.validation import clean_str, validate_email, validate_required_fields

logger = logging.getLogger(__name__)
router = APIRouter(tags=["checkout"])

PLANS = ("essential", "pro", "premier", "private-build")


def _redirect_urls() -> tuple[str, str]:
    base_url = get_settings().app_base_url.rstrip("/")
    return (
        f"{base_url}/success?session_id={{CHECKOUT_SESSION_ID}}",
        f"{base_url}/pricing",
    )


@router.get("/api/checkout/plans")
async def get_plans():
    """Return the sellable plans with display prices."""
    return {"plans": [{"slug": plan, **billing_service.get_plan_details(plan)} for plan in PLANS]}


@router.post("/api/checkout")
async def create_checkout(
    request: Request,
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    """Create a Stripe Checkout session for a plan."""
    payload = await read_json_body(request)
    plan = payload.get("plan")
    customer = payload.get("customer_data") or {}
    options = payload.get("options") or {}

    if not plan or not isinstance(customer, dict) or validate_required_fields(customer, ["email", "name"]):
        raise HTTPException(status_code=400, detail="Missing required fields")
    if plan not in PLANS:
        raise HTTPException(status_code=400, detail="Invalid plan")
    if not isinstance(options, dict):
        raise HTTPException(status_code=400, detail="options must be an object")
    add_ons = options.get("add_ons") or []
    if not isinstance(add_ons, list) or not all(isinstance(name, str) for name in add_ons):
        raise HTTPException(status_code=400, detail="add_ons must be a list of names")

    success_url, cancel_url = _redirect_urls()
    result = await billing_service.create_checkout_session(
        plan=plan,
        customer=customer,
        success_url=success_url,
        cancel_url=cancel_url,
        rush_delivery=bool(options.get("rush_delivery")),
        add_ons=add_ons,
    )
    if result["error"]:
        log_form_error(monitor, "checkout", "create-session", result["error"], {"plan": plan})
        raise HTTPException(status_code=500, detail="Failed to create checkout session")

    return {"session_id": result["session_id"], "url": result["url"]}


def _build_project_details(payload: dict) -> dict:
    purpose = payload.get("website_purpose")
    if not isinstance(purpose, dict):
        purpose = {}
    return {
        "has_existing_website": bool(payload.get("has_existing_website")),
        "existing_website_url": clean_str(payload.get("existing_website_url")),
        "has_hosting_domain": bool(payload.get("has_hosting_domain")),
        "has_logo": bool(payload.get("has_logo")),
        "logo_link": clean_str(payload.get("logo_link")),
        "website_purpose": {
            "generate_leads": bool(purpose.get("generate_leads")),
            "provide_information": bool(purpose.get("provide_information")),
            "other": bool(purpose.get("other")),
        },
        "other_purpose": clean_str(payload.get("other_purpose")),
        "target_audience": clean_str(payload.get("target_audience")),
        "products_services": clean_str(payload.get("products_services")),
        "branding_guidelines": bool(payload.get("branding_guidelines")),
        "competitors": clean_str(payload.get("competitors")),
        "updates": clean_str(payload.get("updates")),
        "keywords": clean_str(payload.get("keywords")),
        "yearly_maintenance": bool(payload.get("yearly_maintenance")),
    }


@router.post("/api/start")
async def submit_start_form(
    request: Request,
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    """Turn a start-form brief into a checkout session and return where to send the visitor."""
    payload = await read_json_body(request)

    error = validate_required_fields(payload, ["name", "email"])
    if error:
        raise HTTPException(status_code=400, detail=error)
    plan = payload.get("selected_plan")
    if not plan:
        raise HTTPException(status_code=400, detail="Plan selection is required")
    if plan not in PLANS:
        raise HTTPException(status_code=400, detail="Invalid plan")
    if not validate_email(clean_str(payload["email"])):
        raise HTTPException(status_code=400, detail="Invalid email format")

    selected = payload.get("add_ons") or {}
    if not isinstance(selected, dict):
        raise HTTPException(status_code=400, detail="add_ons must be an object")
    add_ons = [name for name in ("maintenance", "googleBusiness", "accessibility", "privacy") if selected.get(name)]

    success_url, cancel_url = _redirect_urls()
    result = await billing_service.create_checkout_session(
        plan=plan,
        customer={"name": str(payload["name"]).strip(), "email": clean_str(payload["email"])},
        success_url=success_url,
        cancel_url=cancel_url,
        rush_delivery=bool(payload.get("rush_delivery")),
        add_ons=add_ons,
        project_details=_build_project_details(payload),
    )
    if result["error"] or not result["url"]:
        log_form_error(monitor, "start", "create-session", result["error"] or "No checkout URL", {"plan": plan})
        raise HTTPException(status_code=500, detail="Failed to create checkout session")

    return {"redirect_url": result["url"]}


@router.get("/api/checkout/session")
async def get_checkout_session(session_id: str = ""):
    """Summary of a completed checkout for the success page."""
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing session_id")

    result = await billing_service.get_session_summary(session_id)
    if result["error"]:
        raise HTTPException(status_code=500, detail="Failed to retrieve session")
    return result["summary"]
