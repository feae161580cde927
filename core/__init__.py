"""
Core modules for Codenex Studio API.

This package contains fundamental utilities used across the application:
- config: Application settings and configuration
- auth: Caller identity forwarded by the authentication gateway
- security: Credential encryption
- exceptions: Custom exception classes
"""

from .config import Settings, get_settings
from .exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    CredentialUnavailableError,
    GenerationNotFoundError,
    GenerationTimeoutError,
    InvalidCredentialError,
    NoOutputError,
    NotFoundError,
    ProviderError,
    QuotaExceededError,
    StorageError,
    UserNotFoundError,
    ValidationError,
)

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Exceptions
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "UserNotFoundError",
    "GenerationNotFoundError",
    "ValidationError",
    "QuotaExceededError",
    "InvalidCredentialError",
    "CredentialUnavailableError",
    "NoOutputError",
    "ProviderError",
    "GenerationTimeoutError",
    "StorageError",
]
