"""Config-driven complaint fields.

Field rows come from the ``complaint_fields`` table and drive three things:
the public form (``normalize_field``), server-side checks of the submitted
``form_data`` (``validate_form_data``) and the admin table (``table_columns``).
"""

from __future__ import annotations

import json
import math
import re
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence
from urllib.parse import urlparse

from ..common.validators import is_email, parse_bool
from ..core.enums import FieldType
from ..core.exceptions import ValidationError
from .model import ComplaintField

_PHONE_RE = re.compile(r"^[0-9+\-() ]{8,20}$")
_FIELD_NAME_RE = re.compile(r"^[a-z][a-z0-9_]{0,99}$")
_CHOICE_TYPES = {FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX}


def parse_options(value: Any) -> list[str]:
    """Accept a JSON list, a Python list, or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except ValueError:
                decoded = None
            if isinstance(decoded, list):
                return parse_options(decoded)
        return [part.strip() for part in text.split(",") if part.strip()]
    return []


def parse_rules(value: Any) -> dict:
    if value is None or value == "":
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    return dict(value) if isinstance(value, Mapping) else {}


def parse_field_type(value: Any) -> FieldType:
    try:
        return FieldType(str(value or FieldType.TEXT.value).strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in FieldType)
        raise ValidationError(f"field_type must be one of: {allowed}")


def require_field_name(value: Any) -> str:
    name = str(value or "").strip()
    if not _FIELD_NAME_RE.match(name):
        raise ValidationError("field_name must start with a letter and use lowercase letters, digits or underscores")
    return name


def normalize_field(row: Mapping[str, Any]) -> ComplaintField:
    """Turn a DB row (or admin payload with an id) into a ``ComplaintField``."""
    return ComplaintField(
        id=int(row.get("id") or 0),
        field_name=str(row["field_name"]),
        field_label=str(row.get("field_label") or row["field_name"]),
        field_type=parse_field_type(row.get("field_type")),
        field_options=parse_options(row.get("field_options")),
        is_required=parse_bool(row.get("is_required")),
        field_order=int(row.get("field_order") or 0),
        is_active=parse_bool(row.get("is_active"), default=True),
        placeholder=row.get("placeholder") or None,
        help_text=row.get("help_text") or None,
        validation_rules=parse_rules(row.get("validation_rules")),
    )


def sort_fields(fields: Iterable[ComplaintField]) -> list[ComplaintField]:
    return sorted(fields, key=lambda f: (f.field_order, f.field_name))


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError("must be a number")
    if not math.isfinite(number):
        raise ValueError("must be a finite number")
    return number


def _check_length(text: str, rules: dict) -> None:
    min_len = rules.get("minLength")
    max_len = rules.get("maxLength")
    if min_len is not None and len(text) < int(min_len):
        raise ValueError(f"must be at least {int(min_len)} characters")
    if max_len is not None and len(text) > int(max_len):
        raise ValueError(f"must be at most {int(max_len)} characters")
    pattern = rules.get("pattern")
    if pattern:
        try:
            matched = re.fullmatch(str(pattern), text)
        except re.error:
            matched = None
        if not matched:
            raise ValueError("has an invalid format")


def _coerce(f: ComplaintField, value: Any) -> Any:
    """Return the cleaned value or raise ValueError with a short reason."""
    t = f.field_type
    rules = f.validation_rules

    if t == FieldType.CHECKBOX:
        items = value if isinstance(value, (list, tuple)) else [value]
        cleaned = [str(v).strip() for v in items if not _is_blank(v)]
        if f.field_options:
            invalid = [v for v in cleaned if v not in f.field_options]
            if invalid:
                raise ValueError(f"has invalid choice(s): {', '.join(invalid)}")
        return cleaned

    if t == FieldType.NUMBER:
        number = _as_number(value)
        if rules.get("min") is not None and number < float(rules["min"]):
            raise ValueError(f"must be at least {rules['min']}")
        if rules.get("max") is not None and number > float(rules["max"]):
            raise ValueError(f"must be at most {rules['max']}")
        return int(number) if number.is_integer() else number

    if isinstance(value, (list, tuple, dict)):
        raise ValueError("must be a single value")
    text = str(value).strip()

    if t == FieldType.EMAIL:
        if not is_email(text):
            raise ValueError("must be a valid email address")
        return text.lower()
    if t == FieldType.URL:
        parsed = urlparse(text)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("must be a valid URL")
        return text
    if t == FieldType.PHONE:
        if not _PHONE_RE.match(text):
            raise ValueError("must be a valid phone number")
        return text
    if t == FieldType.DATE:
        try:
            return datetime.strptime(text, "%Y-%m-%d").date().isoformat()
        except ValueError:
            raise ValueError("must be a date (YYYY-MM-DD)")
    if t == FieldType.TIME:
        try:
            return datetime.strptime(text, "%H:%M").strftime("%H:%M")
        except ValueError:
            raise ValueError("must be a time (HH:MM)")
    if t in (FieldType.SELECT, FieldType.RADIO):
        if f.field_options and text not in f.field_options:
            raise ValueError("must be one of the listed options")
        return text

    # text, textarea, file
    _check_length(text, rules)
    return text


def validate_form_data(fields: Sequence[ComplaintField], form_data: Any) -> dict[str, Any]:
    """Check submitted values against the active fields.

    Keys that do not belong to an active field are dropped. All problems are
    collected and raised together as one ``ValidationError``.
    """
    if form_data is None:
        form_data = {}
    if not isinstance(form_data, Mapping):
        raise ValidationError("form_data must be an object")

    errors: list[str] = []
    cleaned: dict[str, Any] = {}
    for f in sort_fields(fields):
        if not f.is_active:
            continue
        value = form_data.get(f.field_name)
        if _is_blank(value):
            if f.is_required:
                errors.append(f"{f.field_label} is required")
            continue
        try:
            cleaned[f.field_name] = _coerce(f, value)
        except ValueError as exc:
            errors.append(f"{f.field_label} {exc}")

    if errors:
        raise ValidationError("Invalid form data: " + "; ".join(errors), errors=errors)
    return cleaned


def table_columns(fields: Iterable[ComplaintField]) -> list[dict[str, str]]:
    """Column definition for rendering ``form_data`` values in the admin table."""
    return [
        {"key": f.field_name, "label": f.field_label, "type": f.field_type.value}
        for f in sort_fields(fields)
        if f.is_active and f.field_type != FieldType.FILE
    ]


def validate_field_definition(field_type: FieldType, options: list[str]) -> None:
    if field_type in _CHOICE_TYPES and not options:
        raise ValidationError("field_options are required for select, radio and checkbox fields")


def validate_rules(rules: Mapping[str, Any]) -> dict:
    """Reject validation rules that could never be applied to a value."""
    out = dict(rules)
    for key in ("minLength", "maxLength", "min", "max"):
        if out.get(key) is None:
            continue
        try:
            number = float(out[key])
        except (TypeError, ValueError):
            raise ValidationError(f"validation_rules.{key} must be a number")
        if not math.isfinite(number):
            raise ValidationError(f"validation_rules.{key} must be a number")
    pattern = out.get("pattern")
    if pattern:
        try:
            re.compile(str(pattern))
        except re.error as exc:
            raise ValidationError(f"validation_rules.pattern is not a valid regular expression: {exc}")
    return out
