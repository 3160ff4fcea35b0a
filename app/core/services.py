"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views and socket consumers handle transport concerns, models handle data,
    services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, authorization)
    - Exceptions: Use for unexpected failures (exhausted retries, bugs)

Usage:
    from core.exceptions import ErrorCode
    from core.services import BaseService, ServiceResult

    class TypingService(BaseService):
        @classmethod
        def start_typing(cls, chat, user) -> ServiceResult[TypingIndicator]:
            if not chat.is_participant(user):
                return ServiceResult.failure(
                    "You are not a participant in this chat",
                    error_code=ErrorCode.PERMISSION_DENIED,
                )
            ...
            return ServiceResult.success(indicator)

    # In a view
    result = TypingService.start_typing(chat, request.user)
    if not result:
        return Response(result.to_response(), status=status_for_error_code(result.error_code))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from core.exceptions import BaseApplicationError, ErrorCode

if TYPE_CHECKING:
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: One of core.exceptions.ErrorCode
        errors: Field-level errors for validation failures

    Usage:
        result = ConversationService.get_or_create_direct(user, other)
        if result.success:
            chat, created = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error kind (defaults to INVALID_ARGUMENT)
            errors: Field-level errors (for validation failures)

        Example:
            return ServiceResult.failure(
                "Emoji must be 1-10 characters",
                error_code=ErrorCode.INVALID_ARGUMENT,
                errors={"emoji": ["Too long"]},
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code or ErrorCode.INVALID_ARGUMENT,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own error code and details; any other
        exception uses the given code or its class name.
        """
        if isinstance(exc, BaseApplicationError):
            return cls(
                success=False,
                error=exc.message,
                error_code=error_code or exc.error_code,
                errors=exc.details or None,
            )
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Failures render as {"error", "error_code", "errors"?} so REST and
        socket error frames share one shape.
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {"error": self.error}
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides a per-service logger.

    Design Notes:
        - Use @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs (e.g. "chat.services.MessageService").
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")
