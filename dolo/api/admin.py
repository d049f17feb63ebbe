"""
Admin dashboard API - login, lead views, error log, and diagnostics.
Also provides get_current_admin/require_role dependency functions.
"""
import json
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select, text, and_
from sqlalchemy.ext.asyncio import AsyncSession

from dolo.api.deps import get_error_monitor, read_json_body
from dolo.config import get_settings
from dolo.database import get_db
from dolo.models.admin_user import AdminUser
from dolo.models.submissions import ContactSubmission, QuizResult, PrivateBuildApplication
from dolo.services import email as email_service
from dolo.services import submissions
from dolo.utils.error_monitoring import ErrorMonitor
from dolo.utils.validation import validate_email
from dolo.utils.webhook_signatures import compute_stripe_signature, verify_stripe_signature

logger = logging.getLogger(__name__)
router = APIRouter(tags=["admin"])
bearer_scheme = HTTPBearer()

DIAGNOSTIC_TABLES = {
    "contact_submissions": ContactSubmission,
    "quiz_results": QuizResult,
    "private_build_applications": PrivateBuildApplication,
    "admin_users": AdminUser,
}


def _jwt_secret() -> str:
    settings = get_settings()
    secret = settings.admin_jwt_secret or settings.app_secret_key
    if not secret:
        raise HTTPException(status_code=503, detail="Admin auth not configured")
    return secret


# === AUTH ===

@router.post("/api/admin/login")
async def login(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate an admin user and return a JWT."""
    payload = await read_json_body(request)
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    if not email or not password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    result = await db.execute(
        select(AdminUser).where(and_(AdminUser.email == email, AdminUser.is_active == True))
    )
    admin = result.scalar_one_or_none()

    import bcrypt
    if not admin or not bcrypt.checkpw(password.encode(), admin.password_hash.encode()):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    import jwt
    settings = get_settings()
    token = jwt.encode(
        {
            "admin_id": str(admin.id),
            "role": admin.role,
            "exp": datetime.now(timezone.utc) + timedelta(hours=settings.admin_jwt_expiry_hours),
        },
        _jwt_secret(),
        algorithm="HS256",
    )
    return {"token": token, "admin_id": str(admin.id), "email": admin.email, "role": admin.role}


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    """Dependency to extract and verify an active admin from a JWT Bearer token."""
    import jwt as pyjwt

    try:
        payload = pyjwt.decode(credentials.credentials, _jwt_secret(), algorithms=["HS256"])
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        admin_uuid = uuid.UUID(payload.get("admin_id") or "")
    except (ValueError, AttributeError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    result = await db.execute(
        select(AdminUser).where(and_(AdminUser.id == admin_uuid, AdminUser.is_active == True))
    )
    admin = result.scalar_one_or_none()
    if not admin:
        raise HTTPException(status_code=401, detail="User not authorized")
    return admin


def require_role(*roles: str):
    """Dependency factory: the current admin must hold one of `roles`."""

    async def _check(admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
        if admin.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role {admin.role} not authorized. Required: {', '.join(roles)}",
            )
        return admin

    return _check


# === LEADS ===

@router.get("/api/admin/quiz-results")
async def list_quiz_results(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    rows = await submissions.list_recent(db, QuizResult, limit)
    return {"results": [row.to_dict() for row in rows], "count": len(rows)}


@router.get("/api/admin/contact-submissions")
async def list_contact_submissions(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    rows = await submissions.list_recent(db, ContactSubmission, limit)
    return {"results": [row.to_dict() for row in rows], "count": len(rows)}


# === ERROR LOG ===

@router.get("/api/admin/errors")
async def get_errors(
    limit: int = Query(10, ge=1, le=100),
    component: str = "",
    admin: AdminUser = Depends(get_current_admin),
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    """Recent errors, optionally filtered to one component tag (e.g. Form:contact)."""
    if component:
        entries = monitor.get_by_component(component)[-limit:]
    else:
        entries = monitor.get_recent(limit)
    return {"errors": [entry.to_dict() for entry in entries], "total_stored": len(monitor)}


@router.delete("/api/admin/errors")
async def clear_errors(
    admin: AdminUser = Depends(require_role("admin")),
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    cleared = len(monitor)
    monitor.clear()
    logger.info("Error log cleared by %s (%d entries)", admin.email, cleared)
    return {"cleared": cleared}


# === DIAGNOSTICS ===

@router.get("/api/admin/diagnostics")
async def diagnostics(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    """Database, email, and Stripe readiness plus the five most recent errors."""
    settings = get_settings()
    report = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {"connection": False, "tables": {}},
        "email": {"configured": email_service.is_email_configured(), "service": "sendgrid"},
        "stripe": {
            "configured": bool(settings.stripe_secret_key),
            "webhook_secret_configured": bool(settings.stripe_webhook_secret),
        },
        "recent_errors": [entry.to_dict() for entry in monitor.get_recent(5)],
    }

    try:
        await db.execute(text("SELECT 1"))
        report["database"]["connection"] = True
    except Exception as e:
        logger.error("Diagnostics database check failed: %s", str(e))
        await db.rollback()

    for table, model in DIAGNOSTIC_TABLES.items():
        try:
            await db.execute(select(model.id).limit(1))
            report["database"]["tables"][table] = {"can_select": True, "error": None}
        except Exception as e:
            await db.rollback()
            report["database"]["tables"][table] = {"can_select": False, "error": str(e)}

    return report


@router.post("/api/admin/diagnostics/email")
async def send_test_email(
    request: Request,
    admin: AdminUser = Depends(require_role("admin", "editor")),
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    """Send a sample template to an address to check email delivery end to end."""
    payload = await read_json_body(request)
    to = (payload.get("to") or "").strip()
    template = payload.get("template") or "contact-notification"
    if not validate_email(to):
        raise HTTPException(status_code=400, detail="Invalid email format")
    if template not in email_service.TEMPLATES:
        raise HTTPException(status_code=400, detail=f"Unknown email template: {template}")

    sample = {
        "name": "Diagnostic Test",
        "email": to,
        "message": "This is a diagnostic test email.",
        "plan": "Pro",
        "description": "Diagnostic plan description",
        "link": get_settings().app_base_url,
        "project_type": "pro",
        "budget": "$5k-$10k",
        "timeline": "1-2 months",
        "vision": "Diagnostic vision",
        "amount": 0,
    }
    result = await email_service.send_email(template, to, sample)
    if not result["success"]:
        monitor.log(f"Email:{template}", "diagnostic-send", result["error"] or "unknown")
    return result


@router.post("/api/admin/diagnostics/stripe-signature")
async def stripe_signature_self_check(
    admin: AdminUser = Depends(get_current_admin),
):
    """Sign a sample event with the configured webhook secret and verify it."""
    secret = get_settings().stripe_webhook_secret
    if not secret:
        return {"configured": False, "verified": False}

    payload = json.dumps({"id": "evt_diagnostic", "type": "diagnostic.ping"})
    header = compute_stripe_signature(payload, secret, int(time.time()))
    return {"configured": True, "verified": verify_stripe_signature(payload, header, secret)}
