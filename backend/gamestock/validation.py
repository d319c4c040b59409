from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError


# Maximum price: PHP 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

BARCODE_RE = re.compile(r"^\d{10,13}$")
RELEASE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
IMAGE_URL_RE = re.compile(r"^(/.*\.(jpg|jpeg|png|webp)|https?://.+)$", re.IGNORECASE)
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^(\+639|09)\d{9}$")
URL_RE = re.compile(r"^https?://.+")


def coerce_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Strict integer coercion: rejects bools, floats and scientific notation.

    Money crosses the boundary as integer cents, so "12.5" is an error rather
    than something to round.
    """
    if value is None:
        raise ValidationError(f"{field} is required", details={"field": field})

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", details={"field": field})

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer", details={"field": field})
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(
                f"{field} must be a plain integer (scientific notation not allowed)",
                details={"field": field},
            )
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", details={"field": field})
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", details={"field": field})
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal", details={"field": field})
    else:
        raise ValidationError(f"{field} must be an integer", details={"field": field})

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", details={"field": field})
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}", details={"field": field})
    return result


def coerce_cents(value: Any, field: str, *, positive: bool = False) -> int:
    return coerce_int(value, field, minimum=1 if positive else 0, maximum=MAX_PRICE_CENTS)


def coerce_decimal(value: Any, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number", details={"field": field})
    return result


def coerce_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def require_str(
    payload: dict,
    key: str,
    *,
    min_length: int | None = None,
    max_length: int | None = None,
    label: str | None = None,
) -> str:
    label = label or key
    value = payload.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required", details={"field": key})
    return _check_length(str(value).strip(), key, label, min_length, max_length)


def optional_str(
    payload: dict,
    key: str,
    *,
    max_length: int | None = None,
    lower: bool = False,
) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if lower:
        value = value.lower()
    return _check_length(value, key, key, None, max_length)


def _check_length(value: str, key: str, label: str, min_length, max_length) -> str:
    if min_length is not None and len(value) < min_length:
        raise ValidationError(
            f"{label} must be at least {min_length} characters", details={"field": key}
        )
    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{label} cannot exceed {max_length} characters", details={"field": key}
        )
    return value


def validate_barcode(value: Any, field: str = "barcode") -> str:
    barcode = str(value).strip() if value is not None else ""
    if not BARCODE_RE.match(barcode):
        raise ValidationError("Game barcode must be 10-13 digits", details={"field": field})
    return barcode


def validate_email(value: str | None, field: str = "customer_email") -> str | None:
    if value and not EMAIL_RE.match(value):
        raise ValidationError("Please enter a valid email address", details={"field": field})
    return value


def validate_phone(value: str | None, field: str = "customer_phone") -> str | None:
    if value and not PHONE_RE.match(re.sub(r"[-\s]", "", value)):
        raise ValidationError("Please enter a valid Philippine phone number", details={"field": field})
    return value


def validate_url(value: str | None, field: str) -> str | None:
    if value and not URL_RE.match(value):
        raise ValidationError("Please enter a valid URL", details={"field": field})
    return value


def require_list(payload: dict, key: str, *, label: str | None = None) -> list:
    value = payload.get(key)
    if not isinstance(value, list) or not value:
        raise ValidationError(
            f"At least one {label or key} is required", details={"field": key}
        )
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ValidationError(f"{key}[{i}] must be an object", details={"field": key})
    return value


def parse_pagination(args) -> tuple[int, int]:
    """page/limit query args -> (page, limit); limit capped at 100."""
    page = coerce_int(args.get("page", 1), "page", minimum=1)
    limit = coerce_int(args.get("limit", 20), "limit", minimum=1, maximum=100)
    return page, limit


def parse_customer(payload: dict) -> dict:
    """Customer contact block shared by sales and trades."""
    return {
        "customer_name": require_str(payload, "customer_name", min_length=2, max_length=100, label="Customer name"),
        "customer_phone": validate_phone(optional_str(payload, "customer_phone", max_length=20)),
        "customer_email": validate_email(optional_str(payload, "customer_email", max_length=100, lower=True)),
        "customer_facebook_url": validate_url(
            optional_str(payload, "customer_facebook_url", max_length=200), "customer_facebook_url"
        ),
    }
