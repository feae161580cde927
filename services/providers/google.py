"""
Google Gemini image provider.

Each call builds a client for the key chosen by the credential resolver, so
own and shared keys never share a client.
"""

import asyncio
import logging
import time
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from core.config import Settings

from .base import (
    ERROR_TYPE_NO_OUTPUT,
    ERROR_TYPE_SAFETY_BLOCKED,
    ERROR_TYPE_TIMEOUT,
    GenerationRequest,
    GenerationResult,
    classify_error,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image-preview"


class GeminiImageProvider:
    """
    Google Gemini image generation provider.

    The google-genai client is synchronous; calls run in the default executor
    under a timeout.
    """

    def __init__(self, model: str = DEFAULT_MODEL, timeout: float = 120.0):
        """
        Initialize the Gemini provider.

        Args:
            model: Model id used when a request does not name one
            timeout: Seconds to wait for a single generate_content call
        """
        self._model = model
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiImageProvider":
        return cls(model=settings.gemini_model, timeout=settings.gemini_timeout_seconds)

    @property
    def name(self) -> str:
        return "google"

    @property
    def default_model(self) -> str:
        return self._model

    def _create_client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    @staticmethod
    def _build_contents(request: GenerationRequest) -> list[types.Part]:
        parts = [types.Part.from_text(text=request.prompt)]
        for image in request.images:
            parts.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))
        return parts

    @staticmethod
    def _build_config(request: GenerationRequest) -> types.GenerateContentConfig:
        modalities = ["TEXT", "IMAGE"] if request.expect_image else ["TEXT"]
        return types.GenerateContentConfig(response_modalities=modalities)

    def _process_response(self, response: Any, result: GenerationResult) -> bool:
        """Extract images and text from a response. Returns False if blocked."""
        if not response.candidates:
            return True

        candidate = response.candidates[0]

        if getattr(candidate, "finish_reason", None) is not None and str(
            candidate.finish_reason
        ).endswith("SAFETY"):
            result.safety_blocked = True
            result.error = "Content blocked by safety filter"
            result.error_type = ERROR_TYPE_SAFETY_BLOCKED
            return False

        if candidate.content and candidate.content.parts:
            texts = []
            for part in candidate.content.parts:
                if getattr(part, "thought", None):
                    continue
                if part.inline_data and part.inline_data.data:
                    result.images.append(part.inline_data.data)
                elif part.text:
                    texts.append(part.text)
            if texts:
                result.text_response = "".join(texts)

        return True

    def _set_error(
        self,
        result: GenerationResult,
        error_msg: str,
        start_time: float,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> GenerationResult:
        result.error = error_msg
        result.status_code = status_code
        result.error_type = error_type or classify_error(error_msg, status_code)
        result.duration = time.time() - start_time
        return result

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Send the request's parts to the model and collect the output."""
        start_time = time.time()
        model = request.model or self._model
        result = GenerationResult(provider=self.name, model=model)

        client = self._create_client(request.api_key)
        contents = self._build_contents(request)
        config = self._build_config(request)

        def api_call():
            return client.models.generate_content(model=model, contents=contents, config=config)

        logger.info(
            f"[Gemini] Calling {model}: {len(request.images)} image part(s), "
            f"prompt={request.prompt[:100]!r}"
        )

        loop = asyncio.get_running_loop()
        try:
            response = await asyncio.wait_for(
                loop.run_in_executor(None, api_call), timeout=self._timeout
            )
        except TimeoutError:
            logger.error(f"[Gemini] Request timed out after {self._timeout}s")
            return self._set_error(
                result,
                f"Request timed out after {self._timeout}s",
                start_time,
                error_type=ERROR_TYPE_TIMEOUT,
            )
        except genai_errors.APIError as e:
            logger.error(f"[Gemini] API error {e.code}: {e.message}")
            return self._set_error(result, str(e), start_time, status_code=e.code)
        except Exception as e:
            logger.error(f"[Gemini] Generation error: {e}")
            return self._set_error(result, str(e) or type(e).__name__, start_time)

        if not self._process_response(response, result):
            result.duration = time.time() - start_time
            return result

        result.success = bool(result.images) if request.expect_image else bool(result.text_response)
        if not result.success and not result.error:
            result.error = "Empty response from provider"
            result.error_type = ERROR_TYPE_NO_OUTPUT
        result.duration = time.time() - start_time

        logger.info(
            f"[Gemini] Completed in {result.duration:.2f}s: {len(result.images)} image(s)"
        )
        return result
