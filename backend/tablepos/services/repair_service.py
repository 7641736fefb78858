# Overview: Read-only consistency check between orders and payments.

"""
Repair Check

WHY: Settling an order writes two keys (order claim, then payment) with no
transaction around them. A crash in between leaves them out of step. This
scan finds such records so an operator can resolve them; it never writes.

Reported problems:
- paid_without_payment: order is paid, no payment references it
- payment_without_order: payment references a missing order
- payment_order_not_paid: payment exists but the order is not paid
- duplicate_payments: more than one payment for one order
"""

from __future__ import annotations

from .order_service import STATUS_PAID
from .repository import orders, payments


def find_inconsistencies() -> dict:
    all_orders = {o["id"]: o for o in orders.list()}
    by_order: dict[str, list[str]] = {}
    for payment in payments.list():
        by_order.setdefault(payment.get("orderId"), []).append(payment["id"])

    paid_without_payment = [
        order_id for order_id, order in all_orders.items()
        if order.get("status") == STATUS_PAID and order_id not in by_order
    ]
    payment_without_order = []
    payment_order_not_paid = []
    duplicate_payments = {}

    for order_id, payment_ids in by_order.items():
        order = all_orders.get(order_id)
        if order is None:
            payment_without_order.extend(payment_ids)
            continue
        if order.get("status") != STATUS_PAID:
            payment_order_not_paid.extend(payment_ids)
        if len(payment_ids) > 1:
            duplicate_payments[order_id] = payment_ids

    return {
        "paid_without_payment": sorted(paid_without_payment),
        "payment_without_order": sorted(payment_without_order),
        "payment_order_not_paid": sorted(payment_order_not_paid),
        "duplicate_payments": duplicate_payments,
        "ok": not (paid_without_payment or payment_without_order
                   or payment_order_not_paid or duplicate_payments),
    }
