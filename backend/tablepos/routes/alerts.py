# Overview: Flask API routes for order alerts.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..services import alert_service
from ..services.auth_service import ROLE_CASHIER, ROLE_COOK, ROLE_WAITER
from ..validation import PosError


alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("")
@require_auth
@require_role(ROLE_WAITER, ROLE_COOK, ROLE_CASHIER)
def list_alerts_route():
    """Unread alerts; ?all=true includes acknowledged ones."""
    try:
        include_read = request.args.get("all", "false").lower() == "true"
        alerts = alert_service.list_alerts(include_read=include_read)
        return jsonify({"success": True, "alerts": alerts}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list alerts")
        return jsonify({"error": "Internal server error"}), 500


@alerts_bp.put("/<path:alert_id>/read")
@require_auth
@require_role(ROLE_WAITER, ROLE_COOK, ROLE_CASHIER)
def mark_read_route(alert_id: str):
    try:
        alert_service.mark_read(alert_id, actor=g.user_id)
        return jsonify({"success": True}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to acknowledge alert")
        return jsonify({"error": "Internal server error"}), 500
