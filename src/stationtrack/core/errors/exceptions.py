"""Domain exceptions.

Services raise these; ``handlers`` turns them into Problem Details
responses. ``PersistenceError`` never gets that far: the audit recorder
raises and contains it.
"""

from typing import Any


class AppException(Exception):
    """Base for errors with an HTTP mapping.

    Subclasses set ``status_code`` and ``error_code``. ``details`` is
    merged into the response body, and a ``details["errors"]`` list is
    rendered as field errors.
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """A referenced audit event, user or station does not exist."""

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        details.update(
            {
                key: value
                for key, value in (("resource", resource), ("resource_id", resource_id))
                if value
            }
        )
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    """A write collides with existing data, e.g. a registered device id."""

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class ValidationError(AppException):
    """Query parameters the service rejects.

    Example:
        raise ValidationError(
            "Invalid date range",
            errors=[{"field": "startDate", "message": "must not be after endDate"}],
        )
    """

    message = "Validation error"
    error_code = "validation_error"
    status_code = 422

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class UnauthorizedError(AppException):
    """No principal, or a bearer token that does not verify."""

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    """The principal lacks a required role."""

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class PersistenceError(AppException):
    """The audit event store rejected or failed an insert."""

    message = "Failed to persist audit event"
    error_code = "persistence_error"
    status_code = 503
