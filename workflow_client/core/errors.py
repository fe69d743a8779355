"""
Client-side exceptions for the fraud workflow client.

Transport rejections are mapped from HTTP status codes to the same
taxonomy the backend raises, so callers can catch by meaning rather
than by status number.
"""

import asyncio
from typing import Any


class WorkflowClientError(Exception):
    """Base exception for all workflow client errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ApiError(WorkflowClientError):
    """
    Raised when the backend answers with a non-2xx status.

    Carries the HTTP status, an optional machine-readable code and the
    per-field validation errors reported by the backend.
    """

    def __init__(
        self,
        message: str,
        status: int = 500,
        code: str | None = None,
        errors: dict[str, Any] | None = None,
    ):
        self.status = status
        self.code = code
        self.errors = errors
        super().__init__(message, details=errors)


class ValidationError(ApiError):
    """
    Raised when the backend rejects request data.

    HTTP Status: 400 Bad Request / 422 Unprocessable Entity
    """

    pass


class UnauthorizedError(ApiError):
    """
    Raised when the session token is missing, invalid or expired.

    HTTP Status: 401 Unauthorized
    """

    pass


class ForbiddenError(ApiError):
    """
    Raised when the user lacks the permission for an action.

    HTTP Status: 403 Forbidden
    """

    pass


class NotFoundError(ApiError):
    """
    Raised when a requested resource does not exist.

    HTTP Status: 404 Not Found
    """

    pass


class ConflictError(ApiError):
    """
    Raised when an operation conflicts with current server state.

    HTTP Status: 409 Conflict
    """

    pass


class InvalidTransitionError(ConflictError):
    """
    Raised when the backend refuses a review status transition.

    Examples:
    - Assigning a CLOSED review
    - Resolving a review that is already RESOLVED
    """

    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        requested_status: str | None = None,
        status: int = 409,
    ):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            message,
            status=status,
            errors={"current_status": current_status, "requested_status": requested_status},
        )


class TransportError(WorkflowClientError):
    """Raised when the backend could not be reached (DNS, connect, timeout)."""

    pass


class RequestAbortedError(WorkflowClientError):
    """Raised when a request is cancelled because a newer request superseded it."""

    def __init__(self, message: str = "Request aborted"):
        super().__init__(message)


class PlaceholderIdError(WorkflowClientError):
    """Raised when a locally fabricated id is used where a server id is required."""

    pass


STATUS_ERROR_MAP: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def error_for_status(
    status: int,
    message: str,
    code: str | None = None,
    errors: dict[str, Any] | None = None,
) -> ApiError:
    """
    Build the exception matching an HTTP status.

    Args:
        status: HTTP status code of the failed response
        message: Human-readable message decoded from the response

    Returns:
        An ApiError subclass instance (ApiError itself for unmapped statuses)
    """
    error_cls = STATUS_ERROR_MAP.get(status, ApiError)
    return error_cls(message, status=status, code=code, errors=errors)


def is_abort_error(error: object) -> bool:
    """Return True when ``error`` signals a cancelled request rather than a failure."""
    return isinstance(error, (RequestAbortedError, asyncio.CancelledError))


def normalize_error(error: BaseException, fallback_message: str) -> WorkflowClientError:
    """
    Coerce any failure into the client error shape.

    Errors from this package pass through unchanged. Anything else (a raw
    exception leaking from a custom transport, for example) becomes a
    WorkflowClientError carrying ``fallback_message``, chained to the original.
    """
    if isinstance(error, WorkflowClientError):
        return error
    normalized = WorkflowClientError(fallback_message, details={"error": str(error)})
    normalized.__cause__ = error
    return normalized
