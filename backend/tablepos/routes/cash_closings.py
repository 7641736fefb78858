# Overview: Flask API routes for cash closings; parses input and returns JSON responses.

# backend/tablepos/routes/cash_closings.py
"""
Cash Closing API Routes

DESIGN:
- Generate an end-of-shift closing from a manual cash count
- Preview the day's per-method summary before counting
- Closings are immutable snapshots; there is no update or delete

SECURITY:
- Cashier role required (admins always pass)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..services import cash_closing_service
from ..services.auth_service import ROLE_CASHIER
from ..validation import PosError, ValidationError


cash_closings_bp = Blueprint("cash_closings", __name__, url_prefix="/api")


@cash_closings_bp.post("/cash-closing")
@require_auth
@require_role(ROLE_CASHIER)
def generate_closing_route():
    """
    Close the cash drawer for a business day.

    Request body:
    {
        "cashCount": 295.00,
        "notes": "two bills torn",      (optional)
        "date": "2026-10-19"            (optional, defaults to today local)
    }

    Returns:
        201: {success, report}; report.difference is signed (negative = shortfall)
        400: Invalid input
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        report = cash_closing_service.generate_closing(
            data.get("cashCount"),
            notes=data.get("notes"),
            day=data.get("date"),
            actor=g.user_id,
        )
        return jsonify({"success": True, "report": report}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to generate cash closing")
        return jsonify({"error": "Internal server error"}), 500


@cash_closings_bp.get("/cash-closings")
@require_auth
@require_role(ROLE_CASHIER)
def list_closings_route():
    """All closings, newest first."""
    try:
        return jsonify({"success": True, "closings": cash_closing_service.list_closings()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list cash closings")
        return jsonify({"error": "Internal server error"}), 500


@cash_closings_bp.get("/cash-closings/summary")
@require_auth
@require_role(ROLE_CASHIER)
def closing_summary_route():
    """
    Per-method totals for a day without creating a closing.

    Query params:
    - date: YYYY-MM-DD (optional, defaults to today local)
    """
    try:
        summary = cash_closing_service.preview_closing(request.args.get("date") or None)
        return jsonify({"success": True, "summary": summary}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to summarize payments")
        return jsonify({"error": "Internal server error"}), 500


@cash_closings_bp.get("/cash-closings/<path:closing_id>")
@require_auth
@require_role(ROLE_CASHIER)
def get_closing_route(closing_id: str):
    try:
        closing = cash_closing_service.get_closing(closing_id)
        return jsonify({"success": True, "closing": closing}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load cash closing")
        return jsonify({"error": "Internal server error"}), 500
