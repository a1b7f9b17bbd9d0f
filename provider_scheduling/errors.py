"""
Error taxonomy for the scheduling engine.

Raised in the core and the booking service, and translated to HTTP
responses in one place by the API exception handler. Each class carries
the status code its failure class maps to.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base exception for all scheduling engine errors."""

    status_code: int = 500
    error_type: str = "scheduling_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": False,
            "error": self.error_type,
            "message": self.message,
        }
        if self.field:
            body["field"] = self.field
        body.update(self.details)
        return body


class ValidationError(SchedulingError):
    """Client input rejected before any storage access."""

    status_code = 400
    error_type = "validation_error"


class AuthenticationError(SchedulingError):
    """No usable caller identity on the request."""

    status_code = 401
    error_type = "unauthenticated"


class PermissionDeniedError(SchedulingError):
    """Caller does not own the resource it is acting on."""

    status_code = 403
    error_type = "permission_denied"


class NotFoundError(SchedulingError):
    """Provider, service, or booking absent."""

    status_code = 404
    error_type = "not_found"


class ConflictError(SchedulingError):
    """Requested time collides with an active booking or breaches closing time."""

    status_code = 409
    error_type = "conflict"


class PreconditionError(SchedulingError):
    """Stored state violates an invariant the operation relies on."""

    status_code = 500
    error_type = "precondition_failed"


class CollaboratorFailure(SchedulingError):
    """A storage or delivery collaborator failed."""

    status_code = 503
    error_type = "collaborator_failure"

    def __init__(self, message: str, *, inconsistent: bool = False, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.inconsistent = inconsistent
        self.details.setdefault("inconsistent", inconsistent)
