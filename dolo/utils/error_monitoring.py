"""
Error monitor - bounded in-memory log of recent errors for the admin diagnostics views.

Entries are kept in insertion order; once capacity (100 by default) is reached
the oldest entry is dropped for each new one. Every entry is also written to
the log stream at ERROR level. Nothing is persisted across restarts.
"""
import logging
import traceback
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


@dataclass
class ErrorLogEntry:
    timestamp: str
    component: str
    action: str
    error: str
    stack: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict:
        return asdict(self)


class ErrorMonitor:
    """Append-only ring of ErrorLogEntry. Never raises."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self._errors: deque[ErrorLogEntry] = deque(maxlen=capacity)

    def log(
        self,
        component: str,
        action: str,
        error: Union[BaseException, str],
        metadata: Optional[dict[str, Any]] = None,
    ) -> ErrorLogEntry:
        if isinstance(error, BaseException):
            message = str(error)
            stack = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        else:
            message = error
            stack = None

        entry = ErrorLogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            component=component,
            action=action,
            error=message,
            stack=stack,
            metadata=metadata,
        )
        self._errors.append(entry)

        logger.error(
            "[%s] %s: %s", component, action, message,
            extra={"component": component, "action": action, "metadata": metadata},
        )
        return entry

    def get_recent(self, limit: int = 10) -> list[ErrorLogEntry]:
        if limit <= 0:
            return []
        return list(self._errors)[-limit:]

    def get_by_component(self, component: str) -> list[ErrorLogEntry]:
        return [entry for entry in self._errors if entry.component == component]

    def clear(self) -> None:
        self._errors.clear()

    def __len__(self) -> int:
        return len(self._errors)


def log_form_error(
    monitor: ErrorMonitor,
    form_name: str,
    action: str,
    error: Union[BaseException, str],
    metadata: Optional[dict[str, Any]] = None,
) -> ErrorLogEntry:
    return monitor.log(f"Form:{form_name}", action, error, metadata)


def log_database_error(
    monitor: ErrorMonitor,
    table: str,
    operation: str,
    error: Union[BaseException, str],
    metadata: Optional[dict[str, Any]] = None,
) -> ErrorLogEntry:
    return monitor.log(f"Database:{table}", operation, error, metadata)


def log_email_error(
    monitor: ErrorMonitor,
    template: str,
    recipient: str,
    error: Union[BaseException, str],
    metadata: Optional[dict[str, Any]] = None,
) -> ErrorLogEntry:
    return monitor.log(f"Email:{template}", f"send-to-{recipient}", error, metadata)
