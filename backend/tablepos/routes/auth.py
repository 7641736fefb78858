# Overview: Flask API routes for auth and user profiles; parses input and returns JSON responses.

# backend/tablepos/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on signup
- Staff accounts can only be created by an admin
- Session management with bearer tokens
- Deactivated accounts cannot log in
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import ROLE_ADMIN, ROLE_CUSTOMER
from ..decorators import require_auth, require_admin, _bearer_token
from ..validation import ForbiddenError, PosError, UnauthorizedError, require_fields


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.post("/auth/signup")
def signup_route():
    """
    Create an account.

    Customers may sign up themselves. Any other role requires the caller to
    be an authenticated admin.

    Request body: {email, password, name, role, phone?}
    """
    try:
        data = require_fields(request.get_json(silent=True), "email", "password", "role")

        if data["role"] != ROLE_CUSTOMER:
            context = session_service.validate_session(_bearer_token())
            if context is None or context.role != ROLE_ADMIN:
                raise ForbiddenError("Only administrators can create staff accounts")
            actor = context.user_id
        else:
            actor = None

        user = auth_service.create_user(
            data["email"],
            data["password"],
            data.get("name") or "",
            data["role"],
            data.get("phone") or "",
            actor=actor,
        )
        return jsonify({"success": True, "user": auth_service.public_profile(user)}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Signup failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/auth/login")
def login_route():
    """
    Authenticate user and create session token.

    Returns {success, accessToken, user}. The token goes in the
    Authorization: Bearer header for protected routes.
    """
    try:
        data = require_fields(request.get_json(silent=True), "email", "password")

        user = auth_service.authenticate(data["email"], data["password"])
        if user is None:
            raise UnauthorizedError("Invalid credentials")

        _, token = session_service.create_session(user["id"])
        return jsonify({
            "success": True,
            "accessToken": token,
            "user": auth_service.public_profile(user),
        }), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/auth/session")
@require_auth
def session_route():
    return jsonify({"success": True, "user": auth_service.public_profile(g.current_user)}), 200


@auth_bp.post("/auth/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token)
    return jsonify({"success": True}), 200


# =============================================================================
# PROFILES
# =============================================================================

@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify({"success": True, "profile": auth_service.public_profile(g.current_user)}), 200


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    """Edit own name/phone/avatar. Role and id are not writable here."""
    try:
        profile = auth_service.update_profile(g.user_id, request.get_json(silent=True), actor=g.user_id)
        return jsonify({"success": True, "profile": profile}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/users")
@require_auth
@require_admin
def list_users_route():
    try:
        return jsonify({"success": True, "users": auth_service.list_users()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.put("/users/<path:user_id>")
@require_auth
@require_admin
def update_user_status_route(user_id: str):
    """
    Activate or deactivate a user.

    Request body: {active: bool, deactivationNote?}
    """
    try:
        data = require_fields(request.get_json(silent=True), "active")
        user = auth_service.set_user_status(
            user_id, bool(data["active"]), data.get("deactivationNote"), actor=g.user_id
        )
        return jsonify({"success": True, "user": user}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500
