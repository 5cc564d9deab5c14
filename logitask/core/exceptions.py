"""
Platform-wide exception hierarchy.

Services raise these types; ``logitask.blueprints.errors`` registers one
handler per type so every endpoint answers with the same status codes.

Usage:
    from logitask.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="TaskAttachment", resource_id=42)
    raise ValidationError("Please fill in all required fields",
                          details={"driver_name": "Driver Name is required"})
"""


class NotFoundError(Exception):
    """Raised when a requested task, attachment, submission or template is absent.

    Args:
        resource: Human-readable model name (e.g. "Task", "TaskSubmission").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Covers missing required form fields, a missing reject/flag comment and
    a bad upload type or size. Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown (field name -> message).
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class PermissionDenied(Exception):
    """Raised when the caller's role or department may not perform an action."""

    def __init__(self, user_id: int | None, action: str, reason: str | None = None) -> None:
        msg = f"User {user_id} does not have permission for '{action}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.user_id = user_id
        self.action = action
        self.reason = reason


class ConflictError(Exception):
    """Raised when an operation collides with the current state of a row.

    Used for duplicate unique values, reviewing a superseded submission and
    stale optimistic-concurrency versions. Maps to HTTP 409.
    """

    def __init__(self, resource: str, message: str) -> None:
        self.resource = resource
        super().__init__(message)


class InfrastructureError(Exception):
    """Raised when the relational or object store fails during a primary write.

    The failed operation has been rolled back; nothing was persisted.
    Maps to HTTP 503.
    """

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Storage failure during {operation}")
