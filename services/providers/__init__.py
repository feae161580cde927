"""
Image provider layer.

Providers receive an explicit API key per request and report failures on the
returned GenerationResult.
"""

from .base import (
    ERROR_TYPE_CONNECTION,
    ERROR_TYPE_INVALID_KEY,
    ERROR_TYPE_NO_OUTPUT,
    ERROR_TYPE_OVERLOADED,
    ERROR_TYPE_RATE_LIMITED,
    ERROR_TYPE_SAFETY_BLOCKED,
    ERROR_TYPE_TIMEOUT,
    ERROR_TYPE_UNAVAILABLE,
    ERROR_TYPE_UNKNOWN,
    GenerationRequest,
    GenerationResult,
    ImageInput,
    ImageProvider,
    classify_error,
    is_invalid_key_error,
)
from .google import GeminiImageProvider

__all__ = [
    # Error types
    "ERROR_TYPE_OVERLOADED",
    "ERROR_TYPE_UNAVAILABLE",
    "ERROR_TYPE_TIMEOUT",
    "ERROR_TYPE_RATE_LIMITED",
    "ERROR_TYPE_INVALID_KEY",
    "ERROR_TYPE_SAFETY_BLOCKED",
    "ERROR_TYPE_CONNECTION",
    "ERROR_TYPE_NO_OUTPUT",
    "ERROR_TYPE_UNKNOWN",
    # Data classes
    "GenerationRequest",
    "GenerationResult",
    "ImageInput",
    # Protocols
    "ImageProvider",
    # Utilities
    "classify_error",
    "is_invalid_key_error",
    # Implementations
    "GeminiImageProvider",
]
