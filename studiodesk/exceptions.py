"""Exception hierarchy for StudioDesk.

Every error carries the message shown to (or translated for) the user and the
HTTP status the invite endpoint answers with.
"""

from __future__ import annotations


class StudioDeskError(Exception):
    """Base exception for all StudioDesk errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UnauthorizedError(StudioDeskError):
    """Raised when the bearer credential is missing or invalid."""

    status_code = 401


class ForbiddenError(StudioDeskError):
    """Raised when the caller is authenticated but lacks the required role."""

    status_code = 403


class ValidationError(StudioDeskError):
    """Raised for missing fields and password policy violations."""

    status_code = 400


class NotFoundError(StudioDeskError):
    """Raised when an invitation token does not resolve."""

    status_code = 404


class ConflictError(StudioDeskError):
    """Raised when the user is already a member of the tenant."""

    status_code = 409


class InvitationInvalidError(StudioDeskError):
    """Raised when an invitation has expired or was already accepted."""

    status_code = 410


class UpstreamError(StudioDeskError):
    """Raised when storage or email dispatch fails."""

    status_code = 500


class SessionError(StudioDeskError):
    """Raised client-side when a call needs a session and there is none."""

    status_code = 401


class BackendError(StudioDeskError):
    """Raised when a call to the hosted backend fails.

    ``message`` is the backend's raw message; translation happens in the
    calling workflow.
    """

    def __init__(self, message: str, status_code: int = 500, code: str | None = None) -> None:
        super().__init__(message, status_code)
        self.code = code
