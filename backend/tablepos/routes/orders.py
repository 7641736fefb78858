# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/tablepos/routes/orders.py
"""
Order API Routes

DESIGN:
- Waiters open orders for a table; kitchen and floor move them along
  pending -> preparing -> ready -> served
- Cashiers see the settlement queue (ready + served)
- paid is never set here; it is the side effect of recording a payment

SECURITY:
- All routes require authentication
- Creating and editing orders requires a staff role
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..services import order_service, payment_service
from ..services.auth_service import ROLE_CASHIER, ROLE_COOK, ROLE_WAITER
from ..validation import PosError, ValidationError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")

STAFF_ROLES = (ROLE_WAITER, ROLE_COOK, ROLE_CASHIER)


@orders_bp.get("")
@require_auth
@require_role(*STAFF_ROLES)
def list_orders_route():
    """
    List orders.

    Query params:
    - status: only orders in this status (optional)
    """
    try:
        status = request.args.get("status") or None
        orders = order_service.list_orders(status=status)
        return jsonify({"success": True, "orders": orders}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/ready")
@require_auth
@require_role(ROLE_CASHIER, ROLE_WAITER)
def list_ready_route():
    """
    Orders a cashier may select for payment (ready or served).

    Each carries estimatedTotal: the amount due before tip.
    """
    try:
        orders = [
            {**order, "estimatedTotal": payment_service.estimated_total_with_tax(order)}
            for order in order_service.list_ready_for_settlement()
        ]
        return jsonify({"success": True, "orders": orders}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list orders ready for settlement")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<path:order_id>")
@require_auth
@require_role(*STAFF_ROLES)
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(order_id)
        return jsonify({"success": True, "order": order}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("")
@require_auth
@require_role(ROLE_WAITER, ROLE_CASHIER)
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "tableNumber": "4",
        "waiter": "Carlos",            (optional, defaults to caller)
        "items": [
            {"productId": "product:1", "name": "Ajiaco", "unitPrice": 15.99, "quantity": 2}
        ],
        "notes": "no onions"           (optional)
    }

    Returns:
        201: {success, order}
        400: Invalid input
        401: Not authenticated
        500: Server error
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        order = order_service.create_order(
            data.get("tableNumber"),
            data.get("waiter"),
            data.get("items"),
            actor=g.user_id,
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "order": order}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<path:order_id>")
@require_auth
@require_role(*STAFF_ROLES)
def update_order_route(order_id: str):
    """
    Update an order.

    Request body: {status?, items?, tableNumber?, waiter?, notes?, version?}

    Returns:
        200: {success, order}
        400: Invalid input
        404: Unknown order
        409: Illegal status transition or concurrent modification
    """
    try:
        data = request.get_json(silent=True)
        order = order_service.update_order(order_id, data, actor=g.user_id)
        return jsonify({"success": True, "order": order}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500
