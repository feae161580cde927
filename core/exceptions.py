"""
Custom exception classes for the application.

All exceptions inherit from AppException and include:
- error_code: Machine-readable error code for i18n
- message: Human-readable error message
- status_code: HTTP status code to return
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors."""

    error_code: str = "internal_error"
    message: str = "An unexpected error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class AuthenticationError(AppException):
    """Raised when the upstream identity is missing."""

    error_code = "authentication_failed"
    message = "Authentication required"
    status_code = 401


class AuthorizationError(AppException):
    """Raised when user lacks permission."""

    error_code = "authorization_failed"
    message = "You do not have permission to perform this action"
    status_code = 403


class NotFoundError(AppException):
    """Raised when a resource is not found."""

    error_code = "not_found"
    message = "Resource not found"
    status_code = 404


class UserNotFoundError(NotFoundError):
    """Raised when no account exists for a subject id."""

    error_code = "user_not_found"
    message = "User not found"


class GenerationNotFoundError(NotFoundError):
    """Raised when a generation record is missing or owned by someone else."""

    error_code = "generation_not_found"
    message = "Generation not found or access denied"


class ValidationError(AppException):
    """Raised when input validation fails."""

    error_code = "validation_error"
    message = "Invalid input"
    status_code = 422


class QuotaExceededError(AppException):
    """Raised when the free-tier daily limit is reached."""

    error_code = "quota_exceeded"
    message = "Daily generation limit exceeded. Please add your own API key to continue."
    status_code = 429


class InvalidCredentialError(AppException):
    """Raised when a user's own API key is rejected or cannot be decrypted."""

    error_code = "invalid_credential"
    message = (
        "Your API key is invalid. It has been removed. "
        "Please add a valid key or use the free tier."
    )
    status_code = 400


class CredentialUnavailableError(AppException):
    """Raised when neither a user key nor a shared key is available."""

    error_code = "credential_unavailable"
    message = "No API key available. Please add your own Gemini API key or use the free tier."
    status_code = 503


class NoOutputError(AppException):
    """Raised when the provider returns no usable image."""

    error_code = "no_output"
    message = "No images generated"
    status_code = 502


class ProviderError(AppException):
    """Raised when the image provider fails for any other reason."""

    error_code = "provider_error"
    message = "Image generation failed"
    status_code = 502


class GenerationTimeoutError(ProviderError):
    """Raised when generation times out."""

    error_code = "generation_timeout"
    message = "Generation timed out"
    status_code = 504


class StorageError(AppException):
    """Raised when storage operation fails."""

    error_code = "storage_error"
    message = "Storage operation failed"
    status_code = 500
