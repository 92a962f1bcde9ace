"""
Domain exceptions mapped to HTTP responses by the error handlers in app.py.
"""


class NotFoundError(Exception):
    """Requested record does not exist (or is not visible to the caller)."""
    status_code = 404


class AuthenticationError(Exception):
    """No valid identity on the request."""
    status_code = 401


class PermissionDeniedError(Exception):
    """Caller is authenticated but not allowed to perform the action."""
    status_code = 403


class WorkflowError(ValueError):
    """Illegal status transition or business-rule violation."""
    status_code = 400


class ShareAccessError(Exception):
    """Shared-link access refused."""

    def __init__(self, message: str, status_code: int = 403, requires_password: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.requires_password = requires_password
