"""
Dolo Studio - marketing site backend.
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from dolo.config import get_settings
from dolo.api.router import api_router
from dolo.utils.error_monitoring import ErrorMonitor
from dolo.utils.rate_limiter import WebhookRateLimiter
from dolo.utils.logging import (
    configure_structured_logging,
    resolve_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger("dolo")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects a correlation ID into every request context and response header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = resolve_correlation_id(request.headers.get("X-Correlation-ID"))
        set_correlation_id(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    logger.info("Dolo starting up (env=%s)", settings.app_env)

    if not settings.stripe_webhook_secret:
        logger.warning(
            "STRIPE_WEBHOOK_SECRET not set - every Stripe webhook will be rejected "
            "as an invalid signature."
        )
    if not settings.admin_jwt_secret:
        logger.warning(
            "ADMIN_JWT_SECRET not set - falling back to APP_SECRET_KEY. "
            "Set a dedicated JWT secret for production."
        )

    if settings.sentry_dsn:
        try:
            import sentry_sdk
            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                traces_sample_rate=0.1,
                environment=settings.app_env,
            )
            logger.info("Sentry initialized")
        except Exception as e:
            logger.warning("Sentry initialization failed: %s", str(e))

    yield

    logger.info(
        "Dolo shutting down (%d errors in monitor, %d rate limit buckets)",
        len(app.state.error_monitor), len(app.state.webhook_limiter),
    )


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    # Configure structured JSON logging with correlation IDs
    configure_structured_logging(settings.log_level)

    application = FastAPI(
        title="Dolo",
        description="Website studio backend: leads, checkout, and Stripe webhooks",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Process-wide state shared by every request on this app
    application.state.webhook_limiter = WebhookRateLimiter()
    application.state.error_monitor = ErrorMonitor(capacity=settings.error_monitor_capacity)

    origins = ["http://localhost:3000", settings.app_base_url]
    origins += [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization", "Content-Type", "X-Correlation-ID",
            "Accept", "Origin", "X-Requested-With",
        ],
    )

    # Correlation ID middleware (must be added AFTER CORS so it runs on every request)
    application.add_middleware(CorrelationIdMiddleware)

    application.include_router(api_router)

    return application


app = create_app()
