"""
Application error taxonomy and API error rendering.

Every failure the chat core reports belongs to one of four kinds. The kinds
travel as machine-readable error codes, either on a failed ServiceResult
(expected failures) or on a raised BaseApplicationError (unexpected ones):

    INVALID_ARGUMENT   400  Malformed or missing input (empty emoji, self-chat)
    NOT_FOUND          404  Id does not resolve, or resolves to an inactive entity
    PERMISSION_DENIED  403  Not a participant, or lacking admin/owner role
    CONFLICT           409  Concurrent-write collision (normally retried internally)

Exception Hierarchy:
    BaseApplicationError (base)
    ├── InvalidArgumentError
    ├── NotFoundError
    ├── PermissionDeniedError
    └── ConflictError

Usage:
    from core.exceptions import ErrorCode, NotFoundError, status_for_error_code

    # Service layer, expected failure
    return ServiceResult.failure("Message not found", error_code=ErrorCode.NOT_FOUND)

    # Raised failure, rendered by api_exception_handler
    raise NotFoundError("Chat not found")

    # View layer
    status_code = status_for_error_code(result.error_code)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class ErrorCode:
    """Machine-readable error kinds shared by services, views and sockets."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CONFLICT = "CONFLICT"


ERROR_CODE_STATUS: dict[str, int] = {
    ErrorCode.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
}


def status_for_error_code(error_code: str | None) -> int:
    """
    Map an error code to its HTTP status.

    Unknown or missing codes are treated as bad input.
    """
    return ERROR_CODE_STATUS.get(error_code or "", status.HTTP_400_BAD_REQUEST)


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
        status_code: HTTP status used when rendered by the API

    Example:
        try:
            payload = parse_payload(message_type, content, metadata)
        except InvalidArgumentError as e:
            return ServiceResult.failure(e.message, error_code=e.error_code)
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            {"error": ..., "error_code": ..., "details": {...}}
            (details only when present)
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class InvalidArgumentError(BaseApplicationError):
    """
    Raised when input is malformed or a required value is missing.

    Example:
        raise InvalidArgumentError(
            "Location messages require latitude and longitude",
            details={"metadata": ["latitude", "longitude"]},
        )
    """

    default_error_code: str = ErrorCode.INVALID_ARGUMENT
    status_code: int = status.HTTP_400_BAD_REQUEST


class NotFoundError(BaseApplicationError):
    """Raised when an id does not resolve to an active entity."""

    default_error_code: str = ErrorCode.NOT_FOUND
    status_code: int = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the actor may not perform the operation.

    Participants-only resources raise this regardless of whether the
    resource exists, so callers cannot probe for existence.
    """

    default_error_code: str = ErrorCode.PERMISSION_DENIED
    status_code: int = status.HTTP_403_FORBIDDEN


class ConflictError(BaseApplicationError):
    """
    Raised when a concurrent write collides and cannot be resolved.

    Services retry unique-constraint collisions themselves; this only
    escapes when the retries run out.
    """

    default_error_code: str = ErrorCode.CONFLICT
    status_code: int = status.HTTP_409_CONFLICT


def api_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that renders application errors.

    Registered as REST_FRAMEWORK["EXCEPTION_HANDLER"]. Application errors
    become {"error", "error_code"} responses with the error's status;
    everything else falls through to DRF's default handler.
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'view'}: {exc}"
        )
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
