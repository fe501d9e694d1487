from __future__ import annotations

import re
from typing import Any, Optional

from ..core.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is None or len(str(value).strip()) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return str(value).strip()


def require_length_between(value: Optional[str], field_name: str, min_len: int, max_len: int) -> str:
    v = "" if value is None else str(value).strip()
    if not (min_len <= len(v) <= max_len):
        raise ValidationError(f"{field_name} must be between {min_len} and {max_len} characters")
    return v


def is_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value or ""))


def require_email(value: Optional[str], field_name: str = "Email") -> str:
    v = require_non_empty(value, field_name).lower()
    if not is_email(v):
        raise ValidationError(f"{field_name} is not a valid email address")
    return v


def optional_str(value: Any) -> Optional[str]:
    """Strip strings; empty strings and None become None."""
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def clamp_limit(value: Any, *, default: int = DEFAULT_LIST_LIMIT, maximum: int = MAX_LIST_LIMIT) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(limit, maximum))


def parse_offset(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def parse_int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
