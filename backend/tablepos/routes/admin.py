# Overview: Flask API routes for business configuration and consistency checks (admin only).

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_admin
from ..services import configuration_service, repair_service
from ..validation import PosError


admin_bp = Blueprint("admin", __name__, url_prefix="/api")


@admin_bp.get("/configuration")
@require_auth
def get_configuration_route():
    try:
        return jsonify({"success": True, "configuration": configuration_service.get_configuration()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load configuration")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/configuration")
@require_auth
@require_admin
def update_configuration_route():
    """
    Update business configuration.

    Request body (any subset):
    {restaurantName, address, phone, email, taxRate, serviceRate, currency, timezone}
    Rates are percentages (19 = 19%).
    """
    try:
        configuration = configuration_service.update_configuration(
            request.get_json(silent=True), actor=g.user_id
        )
        return jsonify({"success": True, "configuration": configuration}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update configuration")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/admin/consistency")
@require_auth
@require_admin
def consistency_route():
    """Orders and payments that are out of step (read-only)."""
    try:
        report = repair_service.find_inconsistencies()
        return jsonify({"success": True, "report": report}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Consistency check failed")
        return jsonify({"error": "Internal server error"}), 500
