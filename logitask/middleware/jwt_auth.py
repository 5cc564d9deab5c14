"""
JWT Auth Middleware — resolves the caller's identity once per request.

A single ``before_request`` hook parses ``Authorization: Bearer <token>``,
loads the Profile named by ``sub`` and stores it on ``g.current_user``.
Views and services read ``g.current_user`` only; nothing else touches
the token, so identity is settled before any dependent read happens.

Outcome on ``g``:
    g.current_user  Profile or None
    g.auth_error    None, "missing", "expired", "invalid" or "inactive"
"""

import logging

import jwt as pyjwt
from flask import g, request

from logitask.models import db
from logitask.models.auth import Profile
from logitask.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip identity resolution entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/api/v1/storage/",
)


def _resolve_identity():
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None, "missing"

    token = auth_header[7:]  # Strip "Bearer "
    try:
        payload = decode_access_token(token)
    except pyjwt.ExpiredSignatureError:
        return None, "expired"
    except pyjwt.InvalidTokenError:
        return None, "invalid"

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None, "invalid"

    profile = db.session.get(Profile, user_id)
    if profile is None:
        return None, "invalid"
    if profile.status == "inactive":
        return None, "inactive"
    return profile, None


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None
        g.auth_error = "missing"

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        g.current_user, g.auth_error = _resolve_identity()
        if g.auth_error and g.auth_error != "missing":
            logger.info("Rejected bearer token on %s: %s", path, g.auth_error)
