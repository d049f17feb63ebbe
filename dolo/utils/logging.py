"""
JSON log lines for the Dolo API.

Each line carries the record time, level, logger name, the request's correlation id
and any of the structured fields the error monitor and webhook code attach through
`extra=` (component, action, identifier, ...). Stripe and SendGrid credentials are
masked before a line is written, since SDK exceptions echo request headers and
keys back in their messages.
"""
import json
import logging
import re
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

EXTRA_FIELDS = ("component", "action", "event_type", "request_id", "identifier", "metadata")

# sk_/rk_ API keys, webhook signing secrets, SendGrid keys, Bearer tokens
SECRET_PATTERN = re.compile(
    r"\b(?:sk|rk)_(?:live|test)_[0-9A-Za-z]+"
    r"|\bwhsec_[0-9A-Za-z_]+"
    r"|\bSG\.[\w-]+\.[\w-]+"
    r"|(?<=Bearer )[\w.-]+"
)
REDACTED = "[REDACTED]"

# Inbound X-Correlation-ID values are echoed into logs and response headers
CORRELATION_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


def redact_secrets(text: str) -> str:
    return SECRET_PATTERN.sub(REDACTED, text)


def get_correlation_id() -> Optional[str]:
    return correlation_id_ctx.get()


def set_correlation_id(cid: str) -> None:
    correlation_id_ctx.set(cid)


def generate_correlation_id() -> str:
    """New correlation id, UUID4 hex (32 chars)."""
    return uuid.uuid4().hex


def resolve_correlation_id(header_value: Optional[str]) -> str:
    """Keep a caller-supplied id when it is short and token-safe, else mint one."""
    if header_value and CORRELATION_ID_PATTERN.fullmatch(header_value):
        return header_value
    return generate_correlation_id()


class StructuredJsonFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects:

    {"timestamp": "2026-01-01T00:00:00.000000Z", "level": "ERROR",
     "correlation_id": "...", "module": "dolo.api.webhooks", "message": "...",
     "component": "Webhook:stripe", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        log_entry = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "correlation_id": get_correlation_id(),
            "module": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val

        # masked after serialisation so extras and tracebacks are covered too
        return redact_secrets(json.dumps(log_entry, default=str))


def configure_structured_logging(log_level: str = "INFO") -> None:
    """
    Route the root logger through a single JSON stderr handler.
    Called once from create_app(); repeated calls replace the handler.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(StructuredJsonFormatter())
    root_logger.addHandler(stream_handler)

    # Stripe's SDK logs full request lines at INFO
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "stripe"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
