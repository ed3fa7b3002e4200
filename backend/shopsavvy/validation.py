from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from shopsavvy.time_utils import coerce_datetime


# Maximum money value: 9,999,999.99
# This prevents storage overflow issues and nonsensical prices
MAX_MONEY = Decimal("9999999.99")
CENTS = Decimal("0.01")


class LedgerError(Exception):
    """Base for every failure the ledger reports back as a failed Result."""
    error_type = "error"


class ValidationError(LedgerError):
    """Input problem: duplicate name/store number, missing or malformed field."""
    error_type = "validation"


class NotFoundError(LedgerError):
    """Operation referenced an unknown id."""
    error_type = "not_found"


class ConflictError(LedgerError):
    """Business rule conflict (e.g., deleting a shop that has sales)."""
    error_type = "conflict"


class StorageIOError(LedgerError):
    """Persistence read/write failure or flush timeout."""
    error_type = "io"


def require_text(data: dict, field: str, label: str | None = None) -> str:
    value = data.get(field)
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label or field} is required")
    return value.strip()


def optional_text(data: dict, field: str) -> str | None:
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    return value or None


def coerce_email(value: str | None) -> str | None:
    if not value:
        return None
    if "@" not in value:
        raise ValidationError("Invalid email format")
    return value.lower()


def coerce_money(value: Any, field: str) -> Decimal:
    """
    Money is a non-negative Decimal quantized to cents (half-up).

    Accepts Decimal, int, float (via str to avoid binary noise) or numeric strings.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if amount > MAX_MONEY:
        raise ValidationError(f"{field} exceeds maximum of {MAX_MONEY}")
    return amount


def coerce_quantity(value: Any, field: str, *, minimum: int = 0) -> int:
    """Strict integer coercion: rejects floats, decimals and scientific notation."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if result < minimum:
        if minimum == 0:
            raise ValidationError(f"{field} cannot be negative")
        raise ValidationError(f"{field} must be at least {minimum}")
    return result


def coerce_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    raise ValidationError(f"{field} must be a boolean")


def coerce_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    allowed = tuple(choices)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value


def coerce_optional_datetime(value: Any, field: str):
    if value in (None, ""):
        return None
    try:
        return coerce_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")
