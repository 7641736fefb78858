# Overview: Settlement of orders; totals computation and append-only payment records.

"""
Payment Processing Service

WHY: Turn a ready/served order into exactly one completed payment with
tax, service charge, tip and change computed the same way everywhere.

DESIGN PRINCIPLES:
- One canonical formula:
      serviceCharge = subtotal x serviceRate
      tax           = subtotal x taxRate     (service and tip are not taxed)
      total         = subtotal + tax + serviceCharge + tip
  Components are Decimal, rounded half-up to cents, and total is the sum of
  the rounded components so the stored record always adds up exactly.
- Payments are append-only. Nothing here updates an existing payment.
- One completed payment per order. The order is claimed first with a
  compare-and-set on its version; only the writer that wins the claim
  writes a payment, so concurrent settlements cannot double-charge.
- Claim and payment write are two keys. If the payment write fails after
  the claim, the error propagates and the paid-without-payment order is
  reported by repair_service.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from tablepos.money import HUNDRED, ZERO, MoneyFormatError, format_money, quantize, to_decimal, to_money
from tablepos.time_utils import now_z
from ..validation import (
    AlreadyPaidError,
    ConflictError,
    InvalidTransitionError,
    ValidationError,
    parse_amount,
    parse_choice,
    parse_percent,
)
from . import configuration_service
from .order_service import SETTLEABLE_STATUSES, STATUS_PAID
from .repository import new_identifier, orders, payments


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

PAYMENT_METHOD_CASH = "cash"
PAYMENT_METHOD_CARD = "card"
PAYMENT_METHOD_TRANSFER = "transfer"
PAYMENT_METHOD_MIXED = "mixed"
PAYMENT_METHOD_QR = "qr"

VALID_PAYMENT_METHODS = [
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_TRANSFER,
    PAYMENT_METHOD_MIXED,
    PAYMENT_METHOD_QR,
]

PAYMENT_STATUS_COMPLETED = "completed"

# Quick-pick tip percentages offered at the register
QUICK_TIP_PERCENTAGES = (10, 15, 20)


# =============================================================================
# TOTALS
# =============================================================================

@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    service_charge: Decimal
    tip: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": format_money(self.subtotal),
            "tax": format_money(self.tax),
            "serviceCharge": format_money(self.service_charge),
            "tip": format_money(self.tip),
            "total": format_money(self.total),
        }


def _rate(value, field: str) -> Decimal:
    try:
        rate = to_decimal(value)
    except MoneyFormatError:
        raise ValidationError(f"{field} must be a number")
    if rate < 0:
        raise ValidationError(f"{field} cannot be negative")
    return rate


def compute_totals(
    order: dict,
    tip_amount=ZERO,
    tax_rate=None,
    service_rate=None,
) -> Totals:
    """
    Amount due for an order.

    Args:
        order: order record (only `subtotal` is read)
        tip_amount: operator-entered tip, or tip_from_percentage()
        tax_rate: fraction (0.19); defaults to configuration
        service_rate: fraction (0.10); 0 if not applicable; defaults to configuration

    Example: subtotal 42.48, tax 0.19, service 0.10, tip 5.00
        -> tax 8.07, serviceCharge 4.25, total 59.80
    """
    if tax_rate is None:
        tax_rate = configuration_service.tax_rate()
    if service_rate is None:
        service_rate = configuration_service.service_rate()

    subtotal = to_money(order["subtotal"])
    tax = quantize(subtotal * _rate(tax_rate, "taxRate"))
    service_charge = quantize(subtotal * _rate(service_rate, "serviceRate"))
    tip = parse_amount(tip_amount if tip_amount is not None else ZERO, "tip")

    total = subtotal + tax + service_charge + tip
    return Totals(
        subtotal=subtotal,
        tax=tax,
        service_charge=service_charge,
        tip=tip,
        total=total,
    )


def tip_from_percentage(subtotal, percent) -> Decimal:
    """Quick-pick tip: percent of subtotal, rounded half-up."""
    return quantize(to_decimal(subtotal) * parse_percent(percent, "tipPercent") / HUNDRED)


def estimated_total_with_tax(order: dict) -> str:
    """
    Display figure for order lists: the canonical total with no tip.

    Not a flat multiplier; it is compute_totals() with tip 0.
    """
    return format_money(compute_totals(order).total)


def _resolve_tip(order: dict, tip, tip_percent, totals) -> Decimal:
    if tip_percent is not None:
        return tip_from_percentage(order["subtotal"], tip_percent)
    if tip is not None:
        return parse_amount(tip, "tip")
    if isinstance(totals, Totals):
        return totals.tip
    if isinstance(totals, dict) and totals.get("tip") is not None:
        return parse_amount(totals["tip"], "tip")
    return ZERO


def _check_supplied_totals(supplied, computed: Totals) -> None:
    """Client-side figures must match the canonical computation."""
    if isinstance(supplied, Totals):
        supplied = supplied.to_dict()
    checks = (
        ("subtotal", computed.subtotal),
        ("tax", computed.tax),
        ("serviceCharge", computed.service_charge),
        ("service", computed.service_charge),
        ("total", computed.total),
    )
    for field, expected in checks:
        value = supplied.get(field)
        if value is None or value == "":
            continue
        amount = parse_amount(value, field)
        if amount != expected:
            raise ValidationError(
                f"Submitted {field} {format_money(amount)} does not match computed {format_money(expected)}"
            )


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def process_payment(
    order_id: str,
    payment_method: str,
    totals=None,
    received_amount=None,
    notes: str | None = None,
    *,
    actor: str | None = None,
    tip=None,
    tip_percent=None,
) -> dict:
    """
    Settle an order.

    Args:
        order_id: order to settle (must be ready or served)
        payment_method: cash, card, transfer, mixed, qr
        totals: figures the client displayed (Totals or dict); cross-checked
        received_amount: cash tendered; required for cash
        notes: free text
        actor: user id recorded as createdBy
        tip / tip_percent: tip amount or quick-pick percentage

    Returns:
        The persisted payment record

    Raises:
        ValidationError: bad method, cash short or missing, totals mismatch
        NotFoundError: unknown order
        AlreadyPaidError: order already paid (also for the loser of a race)
        InvalidTransitionError: order not ready/served
        ConflictError: order changed concurrently for another reason
    """
    order = orders.require(order_id)
    # A paid order answers AlreadyPaid whatever the payload
    if order.get("status") == STATUS_PAID:
        raise AlreadyPaidError(f"Order {order['id']} is already paid")
    parse_choice(payment_method, "paymentMethod", VALID_PAYMENT_METHODS)
    if order.get("status") not in SETTLEABLE_STATUSES:
        raise InvalidTransitionError(
            f"Order {order['id']} is {order.get('status')}; only ready or served orders can be paid"
        )

    computed = compute_totals(order, _resolve_tip(order, tip, tip_percent, totals))
    if totals is not None:
        _check_supplied_totals(totals, computed)

    if payment_method == PAYMENT_METHOD_CASH:
        received = parse_amount(received_amount, "receivedAmount", allow_none=True)
        if received is None:
            raise ValidationError("receivedAmount is required for cash payments")
        if received < computed.total:
            raise ValidationError(
                f"Received amount {format_money(received)} is less than total {format_money(computed.total)}"
            )
        change = max(ZERO, received - computed.total)
    else:
        received = computed.total
        change = ZERO

    payment_id = payments.key_for(new_identifier())
    paid_at = now_z()

    # Claim the order; the loser of a concurrent settlement stops here
    try:
        orders.update(
            order["id"],
            {"status": STATUS_PAID, "paidAt": paid_at, "paymentId": payment_id},
            actor=actor,
            expected_version=order["version"],
        )
    except ConflictError:
        latest = orders.get(order["id"])
        if latest is not None and latest.get("status") == STATUS_PAID:
            raise AlreadyPaidError(f"Order {order['id']} is already paid")
        raise

    record = {
        "orderId": order["id"],
        "tableNumber": order.get("tableNumber"),
        "paymentMethod": payment_method,
        **computed.to_dict(),
        "receivedAmount": format_money(received),
        "change": format_money(change),
        "status": PAYMENT_STATUS_COMPLETED,
        "notes": notes or "",
    }
    try:
        payment = payments.create(record, actor=actor, identifier=payment_id)
    except Exception:
        current_app.logger.exception(
            "Order %s marked paid but payment %s was not written", order["id"], payment_id
        )
        raise

    current_app.logger.info(
        "Payment %s recorded for %s: %s %s", payment["id"], order["id"], payment_method, payment["total"]
    )
    return payment


# =============================================================================
# QUERIES
# =============================================================================

def get_payment(payment_id: str) -> dict:
    return payments.require(payment_id)


def list_payments(method: str | None = None) -> list[dict]:
    """All payments (unfiltered by date); optional method filter."""
    result = payments.list()
    if method is not None:
        parse_choice(method, "paymentMethod", VALID_PAYMENT_METHODS)
        result = [p for p in result if p.get("paymentMethod") == method]
    return result


def get_payment_for_order(order_id: str) -> dict | None:
    key = orders.key_for(order_id)
    for payment in payments.list():
        if payment.get("orderId") == key:
            return payment
    return None
