"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps (authentication, chat,
notifications). Nothing here knows about messages or groups.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ExternalServiceError: Third-party service failures

Validators (import from core.validators):
    - validate_file_size: Upload size limit validator factory

Views (import from core.views):
    - health_check: Database/cache health endpoint
    - service_error_response: ServiceResult failure to HTTP response
"""
