"""
Service-level error taxonomy.

Services raise these; the exception handlers in app.main convert them to
`{"error": ..., "code": ...}` JSON responses with the matching status code.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "unknown"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ServiceError):
    status_code = 400
    code = "invalid_input"


class InvalidTokenError(ServiceError):
    status_code = 400
    code = "invalid_token"


class TokenAlreadyUsedError(ServiceError):
    status_code = 400
    code = "already_used"


class TokenExpiredError(ServiceError):
    status_code = 400
    code = "expired"


class UnauthorizedError(ServiceError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class ConfigurationError(ServiceError):
    """A required external-service setting is missing."""

    code = "configuration"


class UpstreamError(ServiceError):
    """An external call (email webhook) failed."""

    code = "upstream"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class ProfileCreationError(UpstreamError):
    """
    The auth account exists but its profile row could not be inserted.

    The account is kept; callers retry profile creation, not the signup.
    """

    code = "profile_creation_failed"

    def __init__(self, message: str, account_id):
        super().__init__(message)
        self.account_id = account_id


class PersistenceError(ServiceError):
    """A database write failed; the caller may retry the whole request."""

    status_code = 503
    code = "persistence_failed"
