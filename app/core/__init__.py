"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps (chat, notifications):

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - ErrorCode: INVALID_ARGUMENT / NOT_FOUND / PERMISSION_DENIED / CONFLICT
    - BaseApplicationError and one subclass per error code
    - status_for_error_code: error code -> HTTP status
    - api_exception_handler: DRF EXCEPTION_HANDLER

Views (import from core.views):
    - health_check: Infrastructure probe endpoint
"""
