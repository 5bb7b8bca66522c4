"""Error taxonomy raised by services and routers.

Every error carries the HTTP status that the top-level handler in ``main``
uses when rendering the ``{"success": false, "error": ...}`` envelope.
"""

from __future__ import annotations


class ApiError(Exception):
    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(ApiError):
    status_code = 404
    default_message = "Resource not found"


class InvalidInput(ApiError):
    status_code = 400
    default_message = "Invalid input"


class InvalidOperation(ApiError):
    status_code = 400
    default_message = "Operation not allowed"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Not authorized to access this route"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class Internal(ApiError):
    status_code = 500
