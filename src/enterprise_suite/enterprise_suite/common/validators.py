from __future__ import annotations

import re
from datetime import date
from typing import Any, Optional

from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_date

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"The {field_name} field is required.")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"The {field_name} must be at least {min_len} characters.")
    return value


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"The {field_name} may not be greater than {max_len} characters.")
    return value


def require_email(value: Optional[str], field_name: str = "email") -> str:
    v = require_non_empty(value, field_name).lower()
    if not _EMAIL_RE.match(v):
        raise ValidationError(f"The {field_name} must be a valid email address.")
    return v


def is_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value.strip()))


def require_date(value: Any, field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value or "").strip())
    except ValueError:
        raise ValidationError(f"The {field_name} is not a valid date.")


def require_choice(value: Any, enum_cls, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"The selected {field_name} is invalid.")
