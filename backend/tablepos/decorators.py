# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service
from .services.auth_service import ROLE_ADMIN
from .validation import ForbiddenError, UnauthorizedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and g.current_user is not None


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_user: the user profile (dict)
    - g.user_id: the profile id ("user_profile:<uuid>")
    - g.session_context: the full SessionContext object

    Returns 401 if the header is missing, the token is unknown or expired,
    or the account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify(UnauthorizedError("Authentication required").to_dict()), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify(UnauthorizedError("Invalid or expired token").to_dict()), 401

        g.current_user = context.user
        g.user_id = context.user_id
        g.session_context = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require one of the given roles. Admins always pass.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify(UnauthorizedError("Authentication required").to_dict()), 401

            role = g.current_user.get("role")
            if role != ROLE_ADMIN and role not in roles:
                error = ForbiddenError(f"Requires one of roles: {', '.join(roles) or ROLE_ADMIN}")
                body = error.to_dict()
                body["required_roles"] = list(roles)
                return jsonify(body), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    """Require the admin role."""
    return require_role()(f)
