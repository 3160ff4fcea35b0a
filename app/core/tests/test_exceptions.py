"""
Tests for core/exceptions.py and core/services.py.

This module tests:
- Error code to HTTP status mapping
- Application error rendering (to_dict, api_exception_handler)
- ServiceResult success/failure helpers and response shape
"""

import pytest
from rest_framework.exceptions import NotAuthenticated

from core.exceptions import (
    ConflictError,
    ErrorCode,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    api_exception_handler,
    status_for_error_code,
)
from core.services import BaseService, ServiceResult


class TestStatusForErrorCode:
    @pytest.mark.parametrize(
        ("error_code", "status_code"),
        [
            (ErrorCode.INVALID_ARGUMENT, 400),
            (ErrorCode.NOT_FOUND, 404),
            (ErrorCode.PERMISSION_DENIED, 403),
            (ErrorCode.CONFLICT, 409),
            (None, 400),
            ("SOMETHING_ELSE", 400),
        ],
    )
    def test_maps_codes(self, error_code, status_code):
        assert status_for_error_code(error_code) == status_code


class TestApplicationErrors:
    @pytest.mark.parametrize(
        ("error_class", "error_code", "status_code"),
        [
            (InvalidArgumentError, ErrorCode.INVALID_ARGUMENT, 400),
            (NotFoundError, ErrorCode.NOT_FOUND, 404),
            (PermissionDeniedError, ErrorCode.PERMISSION_DENIED, 403),
            (ConflictError, ErrorCode.CONFLICT, 409),
        ],
    )
    def test_default_codes(self, error_class, error_code, status_code):
        error = error_class("boom")

        assert error.error_code == error_code
        assert error.status_code == status_code
        assert str(error) == f"[{error_code}] boom"

    def test_to_dict_includes_details_only_when_present(self):
        assert NotFoundError("gone").to_dict() == {"error": "gone", "error_code": "NOT_FOUND"}
        assert InvalidArgumentError("bad", details={"field": "emoji"}).to_dict() == {
            "error": "bad",
            "error_code": "INVALID_ARGUMENT",
            "details": {"field": "emoji"},
        }

    def test_handler_renders_application_error(self):
        response = api_exception_handler(PermissionDeniedError("nope"), {"view": None})

        assert response.status_code == 403
        assert response.data == {"error": "nope", "error_code": "PERMISSION_DENIED"}

    def test_handler_falls_through_to_drf(self):
        response = api_exception_handler(NotAuthenticated(), {"view": None})

        assert response.status_code == 401


class TestServiceResult:
    def test_success_is_truthy(self):
        result = ServiceResult.success(42)

        assert bool(result) is True
        assert result.data == 42
        assert result.to_response() == {"success": True, "data": 42}

    def test_failure_defaults_to_invalid_argument(self):
        result = ServiceResult.failure("bad input")

        assert bool(result) is False
        assert result.error_code == ErrorCode.INVALID_ARGUMENT

    def test_failure_response_shape(self):
        result = ServiceResult.failure(
            "Emoji must be 1-10 characters",
            error_code=ErrorCode.INVALID_ARGUMENT,
            errors={"emoji": ["Invalid emoji."]},
        )

        assert result.to_response() == {
            "error": "Emoji must be 1-10 characters",
            "error_code": "INVALID_ARGUMENT",
            "errors": {"emoji": ["Invalid emoji."]},
        }

    def test_from_application_error_keeps_code_and_details(self):
        result = ServiceResult.from_exception(
            NotFoundError("Message not found", details={"message_id": 3})
        )

        assert result.error_code == ErrorCode.NOT_FOUND
        assert result.errors == {"message_id": 3}

    def test_from_other_exception_uses_class_name(self):
        result = ServiceResult.from_exception(ValueError("nope"))

        assert result.error == "nope"
        assert result.error_code == "VALUEERROR"


class TestBaseService:
    def test_logger_named_after_service(self):
        class TypingService(BaseService):
            pass

        assert TypingService.get_logger().name.endswith("TypingService")
