"""
Form input checks shared by the public form endpoints.
"""
import re
from typing import Iterable, Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email(email: Optional[str]) -> bool:
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_PATTERN.match(email))


def validate_required_fields(data: dict, required: Iterable[str]) -> Optional[str]:
    """
    Return an error for the first required field that is missing, blank,
    or not a string, else None.
    """
    for field in required:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return f"{field} is required"
        if not isinstance(value, str):
            return f"{field} must be a string"
    return None


def clean_str(value) -> Optional[str]:
    """Strip a string value; blanks and non-strings become None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None
