from __future__ import annotations

from decimal import Decimal
from typing import Any

from .money import MoneyFormatError, quantize, to_decimal


# =============================================================================
# ERROR TAXONOMY
# =============================================================================

class PosError(Exception):
    """
    Base for every failure surfaced to callers.

    Each subclass carries a machine-readable `code` and the HTTP status the
    API layer maps it to. The message is human-readable.
    """
    code = "PosError"
    http_status = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(PosError, ValueError):
    """400-level input problem."""
    code = "ValidationError"
    http_status = 400


class NotFoundError(PosError, LookupError):
    """Referenced entity absent."""
    code = "NotFound"
    http_status = 404


class InvalidTransitionError(PosError):
    """Illegal order status change."""
    code = "InvalidTransition"
    http_status = 409


class AlreadyPaidError(PosError):
    """Duplicate settlement attempt against a paid order."""
    code = "AlreadyPaid"
    http_status = 409


class ConflictError(PosError):
    """409-level concurrent write race (version mismatch, duplicate key)."""
    code = "Conflict"
    http_status = 409


class UnauthorizedError(PosError):
    code = "Unauthorized"
    http_status = 401


class ForbiddenError(PosError):
    code = "Forbidden"
    http_status = 403


class StorageError(PosError):
    """Underlying persistence failure."""
    code = "StorageError"
    http_status = 503


# =============================================================================
# BOUNDARY PARSERS
# =============================================================================

MAX_QUANTITY = 10_000
MAX_AMOUNT = Decimal("999999999.99")


def require_fields(data: dict | None, *names: str) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    missing = [n for n in names if data.get(n) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")
    return data


def parse_amount(value: Any, field: str, *, allow_none: bool = False) -> Decimal | None:
    """Non-negative amount rounded to cents."""
    if value is None or value == "":
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")
    try:
        raw = to_decimal(value)
    except MoneyFormatError:
        raise ValidationError(f"{field} must be a number")
    if raw > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum allowed amount")
    amount = quantize(raw)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum allowed amount")
    return amount


def parse_percent(value: Any, field: str) -> Decimal:
    try:
        percent = to_decimal(value)
    except MoneyFormatError:
        raise ValidationError(f"{field} must be a number")
    if percent < 0 or percent > 100:
        raise ValidationError(f"{field} must be between 0 and 100")
    return percent


def parse_quantity(value: Any, field: str = "quantity") -> int:
    # Integers only: reject floats, bools and scientific notation
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{field} must be an integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be positive")
    if value > MAX_QUANTITY:
        raise ValidationError(f"{field} is too large")
    return value


def parse_order_items(items: Any) -> list[dict]:
    """
    Validate order lines and normalize them to the stored shape:
    {productId, name, unitPrice (money string), quantity (int)}.

    Accepts `unitPrice` or the shorter `price` key.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Order must contain at least one item")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        price = item.get("unitPrice", item.get("price"))
        unit_price = parse_amount(price, f"items[{index}].unitPrice")
        quantity = parse_quantity(item.get("quantity", item.get("qty")), f"items[{index}].quantity")
        parsed.append({
            "productId": item.get("productId"),
            "name": item.get("name") or "",
            "unitPrice": f"{unit_price:.2f}",
            "quantity": quantity,
        })
    return parsed


def parse_choice(value: Any, field: str, choices) -> str:
    if not isinstance(value, str) or value not in choices:
        raise ValidationError(
            f"Invalid {field} '{value}'. Must be one of: {', '.join(sorted(choices))}"
        )
    return value


def reject_fields(data: dict, protected) -> None:
    """Fail if the client tries to write server-owned fields."""
    blocked = sorted(set(data) & set(protected))
    if blocked:
        raise ValidationError(f"Fields not writable: {', '.join(blocked)}")
