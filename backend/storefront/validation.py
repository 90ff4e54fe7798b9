from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from storefront.time_utils import parse_iso_datetime


# Largest amount a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")

CENTS = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level unknown id or reference."""


class AuthorizationError(PermissionError):
    """
    Caller is not allowed to perform the action.

    status_code is 401 when the caller cannot be identified at all,
    403 when the caller is known but lacks the admin role.
    """

    def __init__(self, message: str, status_code: int = 403):
        super().__init__(message)
        self.status_code = status_code


def to_money(value: Any, field: str = "amount", *, exact: bool = False) -> Decimal:
    """
    Coerce a JSON number or numeric string to a 2-place Decimal.

    Booleans are rejected even though they are ints. Floats go through str()
    so 0.1 stays 0.10 and not 0.1000000000000000055511151231257827.

    With exact=True, values with fractions of a cent are rejected instead of
    rounded (customer payments must match a total to the centavo).
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            amount = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds the maximum of {MAX_AMOUNT}")

    if exact and amount != amount.quantize(CENTS):
        raise ValidationError(f"{field} cannot have more than 2 decimal places")

    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds the maximum of {MAX_AMOUNT}")
    return amount


def to_datetime(value: Any, field: str = "date"):
    """Accept datetime objects or ISO-8601 strings; None passes through."""
    if value is None:
        return None
    if hasattr(value, "isoformat") and not isinstance(value, str):
        return value
    if isinstance(value, str):
        try:
            return parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 datetime")
    raise ValidationError(f"{field} must be an ISO-8601 datetime")


def clean_text(value: Any) -> str | None:
    """Strip strings; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def decode_json_field(value: Any, field: str):
    """
    Forms sometimes post nested objects as JSON strings; decode those.
    Anything that is not a string is returned untouched.
    """
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field} format")


def money_to_json(value: Decimal | None) -> float | None:
    """Render a Numeric column as a JSON number."""
    if value is None:
        return None
    return float(value)
