"""
Domain errors raised by the services.

ServiceError subclasses are what callers see; api/errors.py turns them into
the JSON error envelope using ``status`` and ``error``. The remaining
exceptions are internal signals between components and never reach a
response as-is.
"""
from __future__ import annotations


class ServiceError(Exception):
    status = 400
    error = "BAD_REQUEST"
    default_message = "Bad request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(ServiceError):
    pass


class Unauthorized(ServiceError):
    status = 401
    error = "UNAUTHORIZED"
    default_message = "Unauthorized"


class NotFound(ServiceError):
    status = 404
    error = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(ServiceError):
    status = 409
    error = "CONFLICT"
    default_message = "Conflict"


class TransientStoreFailure(ServiceError):
    status = 503
    error = "STORE_UNAVAILABLE"
    default_message = "The service is temporarily unavailable, please retry later"


class AlreadyExists(Exception):
    """A unique key (e.g. normalized email) is already taken."""


class SigningFailure(Exception):
    """The JWT library failed to produce a token."""


class InvalidRefreshToken(Exception):
    """Presented refresh token is unknown or expired.

    ``reason`` is for logs only; callers must not surface it.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"invalid refresh token ({reason})")
