import logging
from typing import Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types              # pydantic config classes

from convobot.config import Settings
from convobot.exceptions import (
    CompletionError,
    ContentRejected,
    QuotaExceeded,
    ServiceUnavailable,
)

logger = logging.getLogger(__name__)

_SAFETY_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY"}
_CONNECTION_TEST_PROMPT = "Hello, this is a test message."


def classify_error(exc: Exception) -> CompletionError:
    """Map an SDK or transport failure onto the completion error taxonomy."""
    code = getattr(exc, "code", None)
    status = str(getattr(exc, "status", "") or "").upper()
    text = str(exc).upper()

    if code in (401, 403) or status in ("UNAUTHENTICATED", "PERMISSION_DENIED") \
            or "API_KEY" in text or "API KEY" in text:
        return ServiceUnavailable(f"Gemini authentication/configuration failure: {exc}")
    if code == 429 or status == "RESOURCE_EXHAUSTED" or "QUOTA" in text or "RESOURCE_EXHAUSTED" in text:
        return QuotaExceeded(f"Gemini quota exceeded: {exc}")
    if "SAFETY" in text:
        return ContentRejected(f"Gemini safety rejection: {exc}")
    return CompletionError(f"Gemini error: {exc}")


def _enum_name(value) -> str:
    return str(getattr(value, "name", value) or "").upper()


class LLMService:
    """Wrapper around the Google Gen AI SDK (text generation only)."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None) -> None:
        self.generation_model = settings.model_generation
        self.max_output_tokens = settings.max_output_tokens

        if client is not None:
            self.client = client
        elif settings.genai_use_vertex and settings.gcp_project_id:
            logger.info("Initialising Google Gen AI client (Vertex AI) …")
            self.client = genai.Client(
                vertexai=True,
                project=settings.gcp_project_id,
                location=settings.gcp_location,
            )
        elif settings.gemini_api_key:
            logger.info("Initialising Google Gen AI client (API key) …")
            self.client = genai.Client(api_key=settings.gemini_api_key)
        else:
            logger.warning("Gemini is not configured. Bot responses will use fallback messages.")
            self.client = None

        if self.client is not None:
            logger.info("Generation model: %s", self.generation_model)

    @property
    def available(self) -> bool:
        return self.client is not None

    # ---------- text generation ------------------------------------------------
    async def complete(self, prompt: str) -> str:
        """Return the generated text for ``prompt``.

        Raises a :class:`CompletionError` subclass on any failure, including a
        response blocked by safety filters.
        """
        if self.client is None:
            raise ServiceUnavailable("Gemini client is not configured")

        cfg = types.GenerateContentConfig(
            response_mime_type="text/plain",
            max_output_tokens=self.max_output_tokens,
        )

        try:
            resp = await self.client.aio.models.generate_content(
                model=self.generation_model,
                contents=prompt,
                config=cfg,
            )
        except genai_errors.APIError as exc:
            logger.error("Gen AI error %s: %s", exc.code, exc)
            raise classify_error(exc) from exc
        except Exception as exc:
            logger.error("Gen AI transport error: %s", exc, exc_info=True)
            raise classify_error(exc) from exc

        feedback = getattr(resp, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise ContentRejected(f"Prompt blocked: {_enum_name(feedback.block_reason)}")

        candidates = getattr(resp, "candidates", None) or []
        if candidates and _enum_name(getattr(candidates[0], "finish_reason", None)) in _SAFETY_FINISH_REASONS:
            raise ContentRejected(f"Response blocked: {_enum_name(candidates[0].finish_reason)}")

        return getattr(resp, "text", None) or ""

    async def check_connection(self) -> bool:
        """Send a fixed test prompt; True when non-empty text comes back."""
        if not self.available:
            return False
        try:
            text = await self.complete(_CONNECTION_TEST_PROMPT)
        except CompletionError as exc:
            logger.warning("Gemini connection test failed: %s", exc)
            return False
        return bool(text.strip())
