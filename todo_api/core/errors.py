"""Error taxonomy shared by the task store and the HTTP layer.

Every error raised by the store carries a stable ``code`` that the API maps
onto the response envelope, plus the HTTP status it is served with.
"""
from typing import Any, Optional


class TodoAPIError(Exception):
    code = "INTERNAL_SERVER_ERROR"
    status_code = 500
    retryable = False
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(TodoAPIError):
    """Malformed or out-of-bound input. Never retried."""

    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Request validation failed"


class NotFound(TodoAPIError):
    """Task absent, or owned by someone else; the two cases look the same."""

    code = "TASK_NOT_FOUND"
    status_code = 404
    default_message = "Task not found"


class Unauthorized(TodoAPIError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Could not validate credentials"


class Conflict(TodoAPIError):
    code = "CONFLICT"
    status_code = 409
    retryable = True
    default_message = "The request conflicts with a concurrent change, retry it"


class StoreUnavailable(TodoAPIError):
    """Store busy or unreachable within the configured timeout."""

    code = "SERVICE_UNAVAILABLE"
    status_code = 503
    retryable = True
    default_message = "Task store is temporarily unavailable, retry later"
