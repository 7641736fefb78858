# Overview: Decimal money helpers; all monetary arithmetic goes through here.

"""
Money handling

Amounts are Decimal in memory and two-place decimal strings ("42.48") in
stored records. Binary floats never participate in arithmetic: incoming JSON
numbers are converted through str() first so 15.99 stays 15.99.

Rounding is ROUND_HALF_UP to cents.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


class MoneyFormatError(ValueError):
    """Raised when a value cannot be read as an amount."""


def to_decimal(value) -> Decimal:
    """
    Convert an incoming value (str, int, float, Decimal) to Decimal.

    Floats are routed through their repr so 0.1 becomes Decimal("0.1"),
    not the binary expansion. Booleans are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise MoneyFormatError(f"Not an amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise MoneyFormatError("Empty amount")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise MoneyFormatError(f"Not an amount: {value!r}")
    else:
        raise MoneyFormatError(f"Not an amount: {value!r}")

    if not result.is_finite():
        raise MoneyFormatError(f"Not an amount: {value!r}")
    return result


def quantize(amount: Decimal) -> Decimal:
    """Round half-up to cents. Amounts too large to hold cents are rejected."""
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise MoneyFormatError(f"Amount out of range: {amount}")


def to_money(value) -> Decimal:
    return quantize(to_decimal(value))


def format_money(amount) -> str:
    """Stored representation: two fractional digits, no exponent."""
    return f"{quantize(to_decimal(amount)):.2f}"


def percent_to_rate(percent) -> Decimal:
    """19 -> Decimal("0.19")."""
    return to_decimal(percent) / HUNDRED


def sum_money(values) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return quantize(total)


def format_rate(percent) -> str:
    """Stored representation of a percentage: 19 -> "19", 8.50 -> "8.5"."""
    normalized = to_decimal(percent).normalize()
    return f"{normalized:f}"
