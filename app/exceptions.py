"""Domain errors raised by services and mapped to HTTP responses in ``app.main``."""

from __future__ import annotations


class HelpdeskError(Exception):
    """Base error; ``detail`` is safe to show to the caller."""

    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class UnauthorizedError(HelpdeskError):
    status_code = 401
    default_detail = "Not authenticated"


class ForbiddenError(HelpdeskError):
    status_code = 403
    default_detail = "Access denied"


class NotFoundError(HelpdeskError):
    status_code = 404
    default_detail = "Not found"


class InvalidStateError(HelpdeskError):
    """Illegal lifecycle transition, e.g. assigning a non-pending conversation."""

    status_code = 400
    default_detail = "Invalid conversation state"


class InvalidContentError(HelpdeskError):
    status_code = 400
    default_detail = "Content is required"


class ConflictError(HelpdeskError):
    status_code = 409
    default_detail = "Conflict"
