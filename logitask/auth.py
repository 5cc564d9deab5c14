"""
Logistics Task Management
Route guards over the identity resolved by ``middleware.jwt_auth``.

Provides:
    - login_required: 401 unless a bearer token resolved to an active profile
    - require_roles:  403 unless the caller holds one of the listed roles
    - current_user:   the resolved Profile (None outside a request)

These guards are the HTTP-side check. Services repeat the role and
department rules they depend on, so a call that bypasses the blueprint
is held to the same rules.

Usage:
    @bp.route("/api/v1/tasks", methods=["POST"])
    @require_roles("admin")
    def create_task():
        ...
"""

import functools
import logging

from flask import g, has_request_context, jsonify

logger = logging.getLogger(__name__)

_AUTH_MESSAGES = {
    "missing": "Authentication required",
    "expired": "Session expired",
    "invalid": "Invalid session token",
    "inactive": "Account is inactive",
}


def current_user():
    """Return the Profile resolved for this request, or None."""
    if not has_request_context():
        return None
    return getattr(g, "current_user", None)


def _unauthorized():
    reason = getattr(g, "auth_error", None) or "missing"
    return jsonify({
        "error": _AUTH_MESSAGES.get(reason, "Authentication required"),
        "code": "ERR_UNAUTHENTICATED",
    }), 401


def login_required(f):
    """Decorator: require an authenticated, active profile."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_user() is None:
            return _unauthorized()
        return f(*args, **kwargs)
    return decorated


def require_roles(*roles: str):
    """
    Decorator: require the caller to hold one of ``roles``.

    Args:
        roles: Role names, e.g. "admin", "executive".
    """
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if user is None:
                return _unauthorized()
            if user.role not in allowed:
                logger.warning(
                    "User %s (%s) denied on %s: requires one of %s",
                    user.id, user.role, f.__name__, sorted(allowed),
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "ERR_FORBIDDEN",
                    "required_any": sorted(allowed),
                }), 403
            return f(*args, **kwargs)
        return decorated
    return decorator
