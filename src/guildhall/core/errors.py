"""Typed outcomes raised by the service layer.

Services raise these for expected business conditions; the API layer renders
them as ``{"detail": ...}`` responses with the attached status code. Anything
that is not a :class:`ChatError` is treated as an internal failure.
"""

from __future__ import annotations

from fastapi import status


class ChatError(Exception):
    """Base class for all expected, caller-visible failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(ChatError):
    """The referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ForbiddenError(ChatError):
    """The caller is authenticated but lacks the capability or authorship."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action"


class UnauthenticatedError(ChatError):
    """Missing or invalid credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Could not validate credentials"


class ConflictError(ChatError):
    """The request conflicts with current state."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class AlreadyMemberError(ConflictError):
    default_detail = "You are already a member of this guild"


class ExpiredError(ChatError):
    """An invite was redeemed after its expiry."""

    status_code = status.HTTP_410_GONE
    default_detail = "Invite has expired"


class ExhaustedError(ChatError):
    """An invite has reached its maximum number of uses."""

    status_code = status.HTTP_410_GONE
    default_detail = "Invite has reached maximum uses"


class ValidationFailedError(ChatError):
    """Input passed schema validation but is semantically malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class InternalFailureError(ChatError):
    """Unexpected store or server failure. Never carries internal detail."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Server error"
