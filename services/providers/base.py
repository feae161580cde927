"""
Base protocols and data classes for image providers.

This module defines the request/result types exchanged with a provider, the
error classification used to tell an invalid key apart from other failures,
and the decoding of base64 image inputs.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from core.exceptions import ValidationError

logger = logging.getLogger(__name__)


# ============ Error Types ============

ERROR_TYPE_OVERLOADED = "overloaded"
ERROR_TYPE_UNAVAILABLE = "unavailable"
ERROR_TYPE_TIMEOUT = "timeout"
ERROR_TYPE_RATE_LIMITED = "rate_limited"
ERROR_TYPE_INVALID_KEY = "invalid_key"
ERROR_TYPE_SAFETY_BLOCKED = "safety_blocked"
ERROR_TYPE_CONNECTION = "connection"
ERROR_TYPE_NO_OUTPUT = "no_output"
ERROR_TYPE_UNKNOWN = "unknown"

# Markers the Gemini API uses when rejecting a key
INVALID_KEY_MARKERS = ("api key not valid", "api_key_invalid")

# Inline images larger than this are rejected before reaching the provider
MAX_IMAGE_BYTES = 10 * 1024 * 1024


# ============ Utility Functions ============


def is_invalid_key_error(error_msg: str, status_code: int | None = None) -> bool:
    """
    Check whether a provider error means the API key was rejected.

    A status code, when known, must be 400 (the API reports bad keys as
    INVALID_ARGUMENT rather than 401/403).
    """
    if status_code is not None and status_code != 400:
        return False
    error_lower = error_msg.lower()
    return any(marker in error_lower for marker in INVALID_KEY_MARKERS)


def classify_error(error_msg: str, status_code: int | None = None) -> str:
    """
    Classify a provider error message into an error type constant.

    Returns:
        One of the ERROR_TYPE_* constants
    """
    if is_invalid_key_error(error_msg, status_code):
        return ERROR_TYPE_INVALID_KEY

    error_lower = error_msg.lower()

    if "overloaded" in error_lower or ("503" in error_lower and "unavailable" in error_lower):
        return ERROR_TYPE_OVERLOADED
    elif "503" in error_lower or "unavailable" in error_lower:
        return ERROR_TYPE_UNAVAILABLE
    elif "timeout" in error_lower or "timed out" in error_lower:
        return ERROR_TYPE_TIMEOUT
    elif status_code == 429 or "quota" in error_lower or "rate" in error_lower:
        return ERROR_TYPE_RATE_LIMITED
    elif "safety" in error_lower or "blocked" in error_lower:
        return ERROR_TYPE_SAFETY_BLOCKED
    elif "server disconnected" in error_lower or "connection" in error_lower:
        return ERROR_TYPE_CONNECTION
    else:
        return ERROR_TYPE_UNKNOWN


# ============ Data Classes ============


@dataclass
class ImageInput:
    """Decoded inline image sent to the provider."""

    data: bytes
    mime_type: str = "image/png"

    @classmethod
    def from_base64(cls, value: str, field_name: str = "image") -> "ImageInput":
        """
        Decode a base64 string or data URL.

        A data-URL prefix is stripped; its media type selects JPEG or WebP,
        anything else is sent as PNG.

        Raises:
            ValidationError: Not valid base64, empty, or over 10MB
        """
        mime_type = "image/png"
        payload = value.strip()

        if "base64," in payload:
            prefix, payload = payload.split("base64,", 1)
            if "image/jpeg" in prefix or "image/jpg" in prefix:
                mime_type = "image/jpeg"
            elif "image/webp" in prefix:
                mime_type = "image/webp"

        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(
                f"{field_name} must be a valid base64 string",
                details={"field": field_name},
            ) from e

        if not data:
            raise ValidationError(f"{field_name} is empty", details={"field": field_name})
        if len(data) > MAX_IMAGE_BYTES:
            raise ValidationError(
                f"{field_name} exceeds maximum size of 10MB",
                details={"field": field_name},
            )

        return cls(data=data, mime_type=mime_type)


@dataclass
class GenerationRequest:
    """
    A single provider call.

    Parts are sent in order: the text instruction first, then each image.
    """

    prompt: str
    api_key: str
    images: list[ImageInput] = field(default_factory=list)
    model: str | None = None
    expect_image: bool = True  # False for text-only answers (segmentation)


@dataclass
class GenerationResult:
    """Result of a provider call."""

    success: bool = False
    images: list[bytes] = field(default_factory=list)
    text_response: str | None = None
    # Metadata
    provider: str = ""
    model: str = ""
    duration: float = 0.0  # seconds
    # Error handling
    error: str | None = None
    error_type: str | None = None
    status_code: int | None = None
    safety_blocked: bool = False

    @property
    def invalid_key(self) -> bool:
        return self.error_type == ERROR_TYPE_INVALID_KEY

    @property
    def timed_out(self) -> bool:
        return self.error_type == ERROR_TYPE_TIMEOUT

    @property
    def no_output(self) -> bool:
        return self.error_type == ERROR_TYPE_NO_OUTPUT


# ============ Provider Protocol ============


@runtime_checkable
class ImageProvider(Protocol):
    """Protocol that image providers implement."""

    @property
    def name(self) -> str: ...

    @property
    def default_model(self) -> str: ...

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run one provider call.

        Failures are reported on the result (error / error_type), never
        raised.
        """
        ...
