"""
Typed failures raised by the service layer.

Services never build HTTP responses themselves: they raise one of these and
the handlers registered on every sub-app translate it into a JSON body with a
stable ``error`` kind and the matching status code.
"""
from typing import Any


class DomainError(Exception):
    kind = "DomainError"
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra


class ValidationError(DomainError):
    """Malformed or missing input."""
    kind = "ValidationError"
    status_code = 400


class EmptyCart(ValidationError):
    kind = "EmptyCart"


class Forbidden(DomainError):
    """Authenticated, but not allowed to touch this resource."""
    kind = "Forbidden"
    status_code = 403


class NotFound(DomainError):
    kind = "NotFound"
    status_code = 404


class InvalidTransition(DomainError):
    """The state machine rejects the requested move."""
    kind = "InvalidTransition"
    status_code = 409


class InsufficientStock(DomainError):
    kind = "InsufficientStock"
    status_code = 409


class Conflict(DomainError):
    """Lost update, stale version or a duplicated request."""
    kind = "Conflict"
    status_code = 409
