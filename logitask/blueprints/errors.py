"""
App-wide error handlers.

Service exceptions from ``logitask.core.exceptions`` and Werkzeug HTTP
errors all answer with the ``{"error", "code", "details?"}`` body built
by ``api_error``.
"""

import logging

from flask import request
from sqlalchemy.exc import SQLAlchemyError

from logitask.core.exceptions import (
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from logitask.models import db
from logitask.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Attach JSON error handlers for service exceptions and HTTP errors."""

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        code = E.VALIDATION_REQUIRED if "required" in str(error).lower() else E.VALIDATION_INVALID
        return api_error(code, str(error), details=error.details)

    @app.errorhandler(PermissionDenied)
    def _handle_permission(error: PermissionDenied):
        logger.warning("Permission denied: %s", error)
        return api_error(E.FORBIDDEN, error.reason or "Permission denied")

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_STATE, str(error))

    @app.errorhandler(InfrastructureError)
    def _handle_infrastructure(error: InfrastructureError):
        logger.error("Infrastructure failure during %s: %s", error.operation, error.cause)
        return api_error(E.UNAVAILABLE, "Service temporarily unavailable, please retry")

    @app.errorhandler(SQLAlchemyError)
    def _handle_db(error: SQLAlchemyError):
        db.session.rollback()
        logger.exception("Unhandled database error on %s", request.path)
        return api_error(E.UNAVAILABLE, "Service temporarily unavailable, please retry")

    @app.errorhandler(400)
    def bad_request(e):
        return api_error(E.BAD_REQUEST, getattr(e, "description", None) or "Bad request")

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, f"Not found: {request.path}")

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.BAD_REQUEST, "Method not allowed", status=405)

    @app.errorhandler(413)
    def too_large(e):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"retry_after": str(e.description)})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
