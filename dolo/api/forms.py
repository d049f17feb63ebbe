"""
Public lead-capture forms - contact, plan quiz, and private build applications.

Saving the submission is the primary outcome; notification emails are best
effort and never fail the request.
"""
import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dolo.api.deps import get_error_monitor, read_json_body
from dolo.database import get_db
from dolo.services import email as email_service
from dolo.services import submissions
from dolo.utils.error_monitoring import (
    ErrorMonitor,
    log_database_error,
    log_email_error,
    log_form_error,
)
from dolo.utils.validation import clean_str, validate_email, validate_required_fields

logger = logging.getLogger(__name__)
router = APIRouter(tags=["forms"])


@router.post("/api/contact")
async def submit_contact(
    request: Request,
    db: AsyncSession = Depends(get_db),
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    """Save a contact form submission and notify the team."""
    start = time.monotonic()
    request_id = uuid.uuid4().hex[:8]

    try:
        payload = await read_json_body(request)

        name = clean_str(payload.get("name"))
        email = clean_str(payload.get("email"))
        message = clean_str(payload.get("message"))
        company = clean_str(payload.get("company"))
        source = clean_str(payload.get("source")) or "contact-form"

        if not name or not email or not message:
            return JSONResponse(
                status_code=400,
                content={"error": "Missing required fields", "request_id": request_id},
            )
        if not validate_email(email):
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid email format", "request_id": request_id},
            )

        try:
            row = await submissions.insert_contact_submission(
                db, name=name, email=email, message=message, company=company, source=source,
            )
            submission_id = str(row.id)
            created_at = row.created_at
        except Exception as e:
            await db.rollback()
            log_database_error(monitor, "contact_submissions", "insert", e, {"request_id": request_id})
            submission_id = f"fallback_{request_id}"
            created_at = datetime.now(timezone.utc)

        email_sent = False
        if email_service.is_email_configured():
            result = await email_service.send_admin_notification("contact-notification", {
                "name": name,
                "email": email,
                "company": company or "Not provided",
                "message": message,
                "source": source,
                "submission_id": submission_id,
                "submission_date": created_at.isoformat(),
            })
            email_sent = result["success"]
            if not email_sent:
                log_email_error(monitor, "contact-notification", "admin", result["error"] or "unknown")

        processing_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Contact submission processed in %dms", processing_ms,
            extra={"request_id": request_id},
        )
        return {
            "success": True,
            "request_id": request_id,
            "message": "Contact form submitted successfully",
            "details": {
                "submission_id": submission_id,
                "email_sent": email_sent,
                "processing_time_ms": processing_ms,
            },
        }
    except HTTPException:
        raise
    except Exception as e:
        log_form_error(monitor, "contact", "submit", e, {"request_id": request_id})
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "request_id": request_id,
                "details": {
                    "message": "An error occurred while processing your request",
                    "processing_time_ms": int((time.monotonic() - start) * 1000),
                },
            },
        )


@router.post("/api/quiz-email")
async def submit_quiz(
    request: Request,
    db: AsyncSession = Depends(get_db),
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    """Save a plan-quiz result and email the recommendation to the visitor."""
    payload = await read_json_body(request)

    error = validate_required_fields(payload, ["email", "plan", "description", "link"])
    if error:
        raise HTTPException(status_code=400, detail=error)
    email = clean_str(payload["email"])
    if not validate_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    if not payload.get("consent"):
        raise HTTPException(status_code=400, detail="Consent is required")

    try:
        row = await submissions.insert_quiz_result(
            db,
            email=email,
            plan=payload["plan"],
            description=payload["description"],
            link=payload["link"],
            consent=True,
        )
    except Exception as e:
        log_database_error(monitor, "quiz_results", "insert", e)
        raise HTTPException(status_code=500, detail="Failed to save quiz result")

    email_sent = False
    if email_service.is_email_configured():
        result = await email_service.send_email("quiz-result", email, {
            "email": email,
            "plan": row.plan,
            "description": row.description,
            "link": row.link,
            "name": email.split("@")[0],
        })
        email_sent = result["success"]
        if not email_sent:
            log_email_error(monitor, "quiz-result", email, result["error"] or "unknown")
    else:
        logger.warning("Email not configured - quiz result email not sent")

    return {
        "success": True,
        "message": "Quiz result sent successfully" if email_sent
        else "Quiz result saved (email service not available)",
        "quiz_result_id": str(row.id),
        "email_sent": email_sent,
    }


@router.post("/api/private-build")
async def submit_private_build(
    request: Request,
    db: AsyncSession = Depends(get_db),
    monitor: ErrorMonitor = Depends(get_error_monitor),
):
    """Save a private build application; notify the team and confirm to the applicant."""
    payload = await read_json_body(request)

    required = ["name", "email", "project_type", "budget", "timeline", "vision"]
    error = validate_required_fields(payload, required)
    if error:
        raise HTTPException(status_code=400, detail=error)
    if not validate_email(clean_str(payload["email"])):
        raise HTTPException(status_code=400, detail="Invalid email format")

    data = {field: payload[field] for field in required}
    data["company"] = clean_str(payload.get("company"))
    data["referral_source"] = clean_str(payload.get("referral_source"))

    try:
        row = await submissions.insert_private_build_application(db, data)
    except Exception as e:
        log_database_error(monitor, "private_build_applications", "insert", e)
        raise HTTPException(status_code=500, detail="Failed to save application")

    application_id = str(row.id)
    emails = {"admin": False, "applicant": False}
    if email_service.is_email_configured():
        admin_result = await email_service.send_admin_notification("private-build-application", {
            "name": row.name,
            "email": row.email,
            "company": row.company or "Not provided",
            "project_type": row.project_type,
            "budget": row.budget,
            "timeline": row.timeline,
            "vision": row.vision,
            "referral_source": row.referral_source or "Not provided",
            "application_id": application_id,
        })
        applicant_result = await email_service.send_email("private-build-confirmation", row.email, {
            "name": row.name,
            "project_type": row.project_type,
            "budget": row.budget,
            "timeline": row.timeline,
            "application_id": application_id,
        })
        emails = {"admin": admin_result["success"], "applicant": applicant_result["success"]}
        if not applicant_result["success"]:
            log_email_error(monitor, "private-build-confirmation", row.email, applicant_result["error"] or "unknown")
    else:
        logger.warning("Email not configured - private build emails not sent")

    return {"success": True, "application_id": application_id, "emails_sent": emails}
