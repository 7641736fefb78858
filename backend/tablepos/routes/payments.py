# Overview: Flask API routes for payments; parses input and returns JSON responses.

# backend/tablepos/routes/payments.py
"""
Payment Processing API Routes

DESIGN:
- Quote the amount due for an order (no write)
- Record the single payment that settles an order
- List payments, optionally for one business day and/or method

SECURITY:
- Cashier role required (admins always pass)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..services import cash_closing_service, order_service, payment_service
from ..services.auth_service import ROLE_CASHIER
from ..validation import PosError, require_fields
from tablepos.money import format_money


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")

# Figures the client displayed; cross-checked against the computed totals
TOTAL_FIELDS = ("subtotal", "tax", "service", "serviceCharge", "total")


def _supplied_totals(data: dict) -> dict | None:
    supplied = {k: data[k] for k in TOTAL_FIELDS if data.get(k) not in (None, "")}
    return supplied or None


# =============================================================================
# PAYMENT CREATION
# =============================================================================

@payments_bp.post("")
@require_auth
@require_role(ROLE_CASHIER)
def process_payment_route():
    """
    Settle an order.

    Request body:
    {
        "orderId": "order:...",
        "paymentMethod": "cash",        cash | card | transfer | mixed | qr
        "tip": 5.00,                    (optional)
        "tipPercent": 10,               (optional, quick-pick; wins over tip)
        "subtotal": 42.48, "tax": 8.07, "service": 4.25, "total": 59.80,
                                        (optional, must match the computed totals)
        "receivedAmount": 60.00,        (required for cash)
        "notes": "..."                  (optional)
    }

    Returns:
        201: {success, payment}
        400: Invalid input, cash short, totals mismatch
        404: Unknown order
        409: Order already paid, not ready, or modified concurrently
    """
    try:
        data = require_fields(request.get_json(silent=True), "orderId", "paymentMethod")

        payment = payment_service.process_payment(
            data["orderId"],
            data["paymentMethod"],
            totals=_supplied_totals(data),
            received_amount=data.get("receivedAmount"),
            notes=data.get("notes"),
            actor=g.user_id,
            tip=data.get("tip"),
            tip_percent=data.get("tipPercent"),
        )
        return jsonify({"success": True, "payment": payment}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to process payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/quote")
@require_auth
@require_role(ROLE_CASHIER)
def quote_route():
    """
    Amount due for an order without recording anything.

    Request body: {orderId, tip?, tipPercent?}
    """
    try:
        data = require_fields(request.get_json(silent=True), "orderId")
        order = order_service.get_order(data["orderId"])

        if data.get("tipPercent") not in (None, ""):
            tip = payment_service.tip_from_percentage(order["subtotal"], data["tipPercent"])
        else:
            tip = data.get("tip") or 0

        totals = payment_service.compute_totals(order, tip)
        quick_tips = [
            {"percent": percent, "amount": format_money(payment_service.tip_from_percentage(order["subtotal"], percent))}
            for percent in payment_service.QUICK_TIP_PERCENTAGES
        ]
        return jsonify({
            "success": True,
            "orderId": order["id"],
            "totals": totals.to_dict(),
            "quickTips": quick_tips,
        }), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to quote order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

@payments_bp.get("")
@require_auth
@require_role(ROLE_CASHIER)
def list_payments_route():
    """
    List payments.

    Query params:
    - date: YYYY-MM-DD business day (optional)
    - method: payment method (optional)
    """
    try:
        method = request.args.get("method") or None
        day = request.args.get("date") or None

        payments = payment_service.list_payments(method=method)
        if day is not None:
            payments = cash_closing_service.daily_payments(day, payments=payments)

        return jsonify({"success": True, "payments": payments}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/<path:payment_id>")
@require_auth
@require_role(ROLE_CASHIER)
def get_payment_route(payment_id: str):
    try:
        payment = payment_service.get_payment(payment_id)
        return jsonify({"success": True, "payment": payment}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load payment")
        return jsonify({"error": "Internal server error"}), 500
