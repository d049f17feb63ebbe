"""
Health check endpoints - used by load balancers, Docker healthcheck, and monitoring.

- GET /health           - basic liveness (always 200 if app running)
- GET /health/ready     - readiness check (DB)
- GET /api/config-check - which integrations are configured (booleans only)
"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from dolo.config import get_settings
from dolo.database import get_db
from dolo.services.email import is_email_configured

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

VERSION = "1.0.0"


@router.get("/health")
async def health_check():
    """Basic liveness check - returns 200 if the app is running."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
    }


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
):
    """Readiness check - verifies database connectivity."""
    checks = {"database": False}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error("Database health check failed: %s", str(e))

    return {
        "status": "ready" if all(checks.values()) else "degraded",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/api/config-check")
async def config_check():
    settings = get_settings()
    return {
        "environment": settings.app_env,
        "services": {
            "email": {"configured": is_email_configured()},
            "stripe": {
                "configured": bool(settings.stripe_secret_key),
                "webhook_secret": bool(settings.stripe_webhook_secret),
            },
            "sentry": {"configured": bool(settings.sentry_dsn)},
            "admin_auth": {"configured": bool(settings.admin_jwt_secret or settings.app_secret_key)},
        },
        "has_site_url": bool(settings.app_base_url),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
