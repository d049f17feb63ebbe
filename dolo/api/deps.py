"""
Request-scoped accessors for per-application state (created in create_app).
"""
from fastapi import HTTPException, Request

from dolo.utils.error_monitoring import ErrorMonitor
from dolo.utils.rate_limiter import WebhookRateLimiter


def get_error_monitor(request: Request) -> ErrorMonitor:
    return request.app.state.error_monitor


def get_webhook_limiter(request: Request) -> WebhookRateLimiter:
    return request.app.state.webhook_limiter


def client_ip(request: Request) -> str:
    """Caller IP, preferring the first X-Forwarded-For hop set by the proxy."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def read_json_body(request: Request) -> dict:
    """Parse a JSON object body; anything else is a 400."""
    try:
        payload = await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    return payload
