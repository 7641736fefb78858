# Overview: Order lifecycle state machine; creation, status changes, settlement queue.

"""
Order Lifecycle Service

================================================================================
PURPOSE: Move a table's order from creation to settlement
================================================================================

STATE MACHINE:
    pending -> preparing -> ready -> served -> paid
        \\          \\         \\        \\
         `----------`---------`--------`--> cancelled

    paid and cancelled are terminal.

RULES:
1. A transition is legal if it is a same-state no-op, exactly one step
   forward, or any non-terminal state -> cancelled.
2. No skipping (pending -> ready is forbidden) and no going back.
3. Settlement (-> paid) happens only through payment_service, which may
   settle from ready or served.
4. Creating an order emits a new_order alert; reaching ready emits
   order_ready. Alerts are best-effort.
5. subtotal is always derived from items, never accepted from clients.

================================================================================
"""

from __future__ import annotations

from flask import current_app

from tablepos.money import ZERO, format_money, to_decimal, quantize
from ..validation import (
    InvalidTransitionError,
    ValidationError,
    parse_order_items,
    reject_fields,
)
from .alert_service import ALERT_NEW_ORDER, ALERT_ORDER_READY, emit_alert
from .repository import orders


STATUS_PENDING = "pending"
STATUS_PREPARING = "preparing"
STATUS_READY = "ready"
STATUS_SERVED = "served"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"

# Forward sequence; index order matters
STATUS_SEQUENCE = [STATUS_PENDING, STATUS_PREPARING, STATUS_READY, STATUS_SERVED, STATUS_PAID]
VALID_STATUSES = set(STATUS_SEQUENCE) | {STATUS_CANCELLED}
TERMINAL_STATUSES = {STATUS_PAID, STATUS_CANCELLED}
SETTLEABLE_STATUSES = {STATUS_READY, STATUS_SERVED}

# Set only by the lifecycle itself
PROTECTED_FIELDS = ("subtotal", "paidAt", "paymentId", "createdAt", "createdBy")
EDITABLE_FIELDS = {"tableNumber", "waiter", "items", "notes", "status", "id"}


def validate_status(status: str) -> None:
    """
    Raises:
        ValidationError: If status is not in VALID_STATUSES
    """
    if not isinstance(status, str) or status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check if a state transition is legal.

    Valid:
    - same state (no-op)
    - one step forward in STATUS_SEQUENCE
    - any non-terminal state -> cancelled

    Invalid:
    - anything out of paid or cancelled
    - skipping steps or moving backwards
    """
    validate_status(from_status)
    validate_status(to_status)

    if from_status == to_status:
        return True

    if from_status in TERMINAL_STATUSES:
        return False

    if to_status == STATUS_CANCELLED:
        return True

    return STATUS_SEQUENCE.index(to_status) == STATUS_SEQUENCE.index(from_status) + 1


def require_transition(from_status: str, to_status: str) -> None:
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(
            f"Cannot transition order from {from_status} to {to_status}"
        )


def compute_subtotal(items: list[dict]) -> str:
    """Sum of unitPrice x quantity, as a money string."""
    total = ZERO
    for item in items:
        total += to_decimal(item["unitPrice"]) * item["quantity"]
    return format_money(quantize(total))


def _require_table_number(table_number) -> str:
    if table_number is None or str(table_number).strip() == "":
        raise ValidationError("tableNumber is required")
    return str(table_number).strip()


# =============================================================================
# COMMANDS
# =============================================================================

def create_order(
    table_number,
    waiter: str | None,
    items,
    *,
    actor: str | None = None,
    notes: str | None = None,
) -> dict:
    """
    Create a pending order and announce it to the kitchen.

    Raises:
        ValidationError: no items, non-positive quantity, negative price,
            missing table number
    """
    parsed_items = parse_order_items(items)
    record = {
        "tableNumber": _require_table_number(table_number),
        "waiter": waiter or actor,
        "items": parsed_items,
        "subtotal": compute_subtotal(parsed_items),
        "status": STATUS_PENDING,
        "paidAt": None,
    }
    if notes:
        record["notes"] = notes

    order = orders.create(record, actor=actor)
    current_app.logger.info("Order %s created for table %s", order["id"], order["tableNumber"])

    emit_alert(ALERT_NEW_ORDER, order)
    return order


def update_order_status(order_id: str, new_status: str, *, actor: str | None = None) -> dict:
    """
    Move an order along the lifecycle.

    Raises:
        NotFoundError: unknown order
        ValidationError: unknown status
        InvalidTransitionError: transition not in the table
        ConflictError: order changed concurrently
    """
    return update_order(order_id, {"status": new_status}, actor=actor)


def update_order(order_id: str, fields: dict, *, actor: str | None = None) -> dict:
    """
    Apply a client edit (PUT /orders/<id>).

    The optional `status` goes through the transition table. Edited items
    recompute the subtotal. Paid and cancelled orders cannot change items.
    """
    if not isinstance(fields, dict):
        raise ValidationError("Request body must be a JSON object")
    reject_fields(fields, PROTECTED_FIELDS)
    unknown = sorted(set(fields) - EDITABLE_FIELDS - {"version"})
    if unknown:
        raise ValidationError(f"Unknown order fields: {', '.join(unknown)}")

    current = orders.require(order_id)
    changes: dict = {}

    new_status = fields.get("status")
    if new_status is not None:
        validate_status(new_status)
        if new_status == STATUS_PAID and current["status"] != STATUS_PAID:
            raise InvalidTransitionError("Orders are marked paid only by recording a payment")
        require_transition(current["status"], new_status)
        changes["status"] = new_status

    if "items" in fields:
        if current["status"] in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Cannot edit items of a {current['status']} order")
        parsed_items = parse_order_items(fields["items"])
        changes["items"] = parsed_items
        changes["subtotal"] = compute_subtotal(parsed_items)

    if "tableNumber" in fields:
        changes["tableNumber"] = _require_table_number(fields["tableNumber"])
    for key in ("waiter", "notes", "id"):
        if key in fields:
            changes[key] = fields[key]

    expected_version = fields.get("version", current["version"])
    updated = orders.update(order_id, changes, actor=actor, expected_version=expected_version)

    if updated["status"] == STATUS_READY and current["status"] != STATUS_READY:
        emit_alert(ALERT_ORDER_READY, updated)

    return updated


def cancel_order(order_id: str, *, actor: str | None = None) -> dict:
    return update_order_status(order_id, STATUS_CANCELLED, actor=actor)


# =============================================================================
# QUERIES
# =============================================================================

def get_order(order_id: str) -> dict:
    return orders.require(order_id)


def list_orders(status: str | None = None) -> list[dict]:
    if status is not None:
        validate_status(status)
        return [o for o in orders.list() if o.get("status") == status]
    return orders.list()


def list_ready_for_settlement() -> list[dict]:
    """Orders a cashier may select for payment (ready or served), oldest first."""
    ready = [o for o in orders.list() if o.get("status") in SETTLEABLE_STATUSES]
    return sorted(ready, key=lambda o: o.get("createdAt") or "")
