# utils/validators.py
"""
Input checks shared by the billing engine and the repositories.

The require_* helpers raise ValidationError with a field label so callers can
surface the message directly.
"""
from __future__ import annotations

from ..errors import ValidationError


def non_empty(text: str | None) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)
    """
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def parse_float(x, field_label: str = "Value") -> float:
    """Strict parse to float; raises ValidationError on failure."""
    ok, val = try_parse_float(x)
    if not ok:
        raise ValidationError(f"{field_label}: could not parse {x!r} as a number.")
    return val  # type: ignore[return-value]


# ---- Guards ----

def require_text(value: str | None, field_label: str) -> str:
    if not non_empty(value):
        raise ValidationError(f"{field_label} cannot be empty.")
    return str(value).strip()


def require_positive(x, field_label: str) -> float:
    val = parse_float(x, field_label)
    if not val > 0:
        raise ValidationError(f"{field_label} must be greater than zero (got {val}).")
    return val


def require_non_negative(x, field_label: str) -> float:
    val = parse_float(x, field_label)
    if val < 0:
        raise ValidationError(f"{field_label} cannot be negative (got {val}).")
    return val


def require_percentage(x, field_label: str) -> float:
    val = parse_float(x, field_label)
    if val < 0 or val > 100:
        raise ValidationError(f"{field_label} must be between 0 and 100 (got {val}).")
    return val
