"""
Base exception classes for application-wide error handling.

Expected business failures are reported through core.services.ServiceResult.
Exceptions are reserved for failures that cross an integration boundary,
where the caller decides whether to log, swallow or propagate them.

Exception Hierarchy:
    BaseApplicationError (base)
    └── ExternalServiceError - Third-party service failures

Usage:
    from core.exceptions import ExternalServiceError

    try:
        response = client.post(url, json=payload)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ExternalServiceError(
            "Push provider unavailable",
            error_code="PUSH_PROVIDER_ERROR",
            details={"original_error": str(e)},
        ) from e
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (provider, status code, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

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
        Convert exception to dictionary for API responses and log records.

        Returns:
            Dict with error, error_code, and details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Push provider failures (FCM, Expo)
    - OAuth token exchange failures
    - Network timeouts

    Note:
        Log the original error for debugging but don't expose
        provider internals to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
