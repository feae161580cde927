"""
Unit tests for provider error classification and image input decoding.
"""

import base64

import pytest

from core.exceptions import ValidationError
from services.providers.base import (
    ERROR_TYPE_CONNECTION,
    ERROR_TYPE_INVALID_KEY,
    ERROR_TYPE_OVERLOADED,
    ERROR_TYPE_RATE_LIMITED,
    ERROR_TYPE_SAFETY_BLOCKED,
    ERROR_TYPE_TIMEOUT,
    ERROR_TYPE_UNAVAILABLE,
    ERROR_TYPE_UNKNOWN,
    MAX_IMAGE_BYTES,
    GenerationResult,
    ImageInput,
    classify_error,
    is_invalid_key_error,
)


class TestInvalidKeyDetection:
    def test_gemini_message(self):
        assert is_invalid_key_error("400 INVALID_ARGUMENT. API key not valid. Please pass a valid API key.", 400)

    def test_reason_marker(self):
        assert is_invalid_key_error("reason: API_KEY_INVALID")

    def test_other_status_code_is_not_invalid_key(self):
        assert not is_invalid_key_error("API key not valid", 403)

    def test_unrelated_400(self):
        assert not is_invalid_key_error("Request contains an invalid argument.", 400)


class TestClassifyError:
    @pytest.mark.parametrize(
        "message,status_code,expected",
        [
            ("API key not valid", 400, ERROR_TYPE_INVALID_KEY),
            ("The model is overloaded. Please try again later.", 503, ERROR_TYPE_OVERLOADED),
            ("503 UNAVAILABLE", 503, ERROR_TYPE_OVERLOADED),
            ("Service unavailable", None, ERROR_TYPE_UNAVAILABLE),
            ("Request timed out", None, ERROR_TYPE_TIMEOUT),
            ("Resource has been exhausted", 429, ERROR_TYPE_RATE_LIMITED),
            ("quota exceeded for project", None, ERROR_TYPE_RATE_LIMITED),
            ("Response was blocked", None, ERROR_TYPE_SAFETY_BLOCKED),
            ("Server disconnected without sending a response", None, ERROR_TYPE_CONNECTION),
            ("something odd", 500, ERROR_TYPE_UNKNOWN),
        ],
    )
    def test_classification(self, message, status_code, expected):
        assert classify_error(message, status_code) == expected


class TestGenerationResult:
    def test_flags(self):
        assert GenerationResult(error_type=ERROR_TYPE_INVALID_KEY).invalid_key
        assert GenerationResult(error_type=ERROR_TYPE_TIMEOUT).timed_out
        assert not GenerationResult(success=True).invalid_key


class TestImageInput:
    def test_plain_base64_defaults_to_png(self):
        image = ImageInput.from_base64(base64.b64encode(b"\x89PNG data").decode())

        assert image.data == b"\x89PNG data"
        assert image.mime_type == "image/png"

    @pytest.mark.parametrize(
        "prefix,mime_type",
        [
            ("data:image/jpeg;base64,", "image/jpeg"),
            ("data:image/jpg;base64,", "image/jpeg"),
            ("data:image/webp;base64,", "image/webp"),
            ("data:image/gif;base64,", "image/png"),
        ],
    )
    def test_data_url_prefix(self, prefix, mime_type):
        image = ImageInput.from_base64(prefix + base64.b64encode(b"bytes").decode())

        assert image.data == b"bytes"
        assert image.mime_type == mime_type

    def test_invalid_base64(self):
        with pytest.raises(ValidationError) as exc_info:
            ImageInput.from_base64("not*base64", "mask_image")

        assert exc_info.value.details == {"field": "mask_image"}
        assert "mask_image" in exc_info.value.message

    def test_empty(self):
        with pytest.raises(ValidationError):
            ImageInput.from_base64("data:image/png;base64,")

    def test_too_large(self):
        payload = base64.b64encode(b"\x00" * (MAX_IMAGE_BYTES + 1)).decode()

        with pytest.raises(ValidationError) as exc_info:
            ImageInput.from_base64(payload)

        assert "10MB" in exc_info.value.message
