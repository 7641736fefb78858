# Overview: Order notifications for kitchen and floor staff.

"""
Alerts are a side channel. emit_alert() never raises: a failed alert write is
logged and dropped so it cannot fail the order write that triggered it.
"""

from __future__ import annotations

from flask import current_app

from ..validation import ConflictError, PosError
from .repository import alerts


ALERT_NEW_ORDER = "new_order"
ALERT_ORDER_READY = "order_ready"

VALID_ALERT_TYPES = {ALERT_NEW_ORDER, ALERT_ORDER_READY}

_MESSAGES = {
    ALERT_NEW_ORDER: "New order for table {table}",
    ALERT_ORDER_READY: "Order ready for table {table}",
}


def emit_alert(alert_type: str, order: dict) -> dict | None:
    """Best-effort alert write. Returns the alert, or None if it failed."""
    try:
        return alerts.create({
            "type": alert_type,
            "message": _MESSAGES[alert_type].format(table=order.get("tableNumber")),
            "orderId": order["id"],
            "read": False,
        })
    except (PosError, KeyError) as exc:
        current_app.logger.warning(
            "Alert %s for %s not recorded: %s", alert_type, order.get("id"), exc
        )
        return None


def list_unread_alerts() -> list[dict]:
    return [a for a in alerts.list() if not a.get("read")]


def list_alerts(include_read: bool = False) -> list[dict]:
    if include_read:
        return alerts.list()
    return list_unread_alerts()


def mark_read(alert_id: str, actor: str | None = None) -> dict:
    """
    Acknowledge an alert.

    Raises:
        NotFoundError: unknown alert
    """
    alert = alerts.require(alert_id)
    if alert.get("read"):
        return alert
    try:
        return alerts.update(alert_id, {"read": True}, actor=actor, expected_version=alert["version"])
    except ConflictError:
        # Someone else acknowledged it first
        latest = alerts.require(alert_id)
        if latest.get("read"):
            return latest
        raise
