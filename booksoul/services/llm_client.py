"""
Completion Client - thin async adapter over the Google Gen AI SDK.

Every LLM call made by the recommendation pipeline goes through
CompletionClient.complete():

- Retries up to LLM_MAX_ATTEMPTS times with exponential backoff
  (base_delay × 1.5^(attempt-1)); credential and context-length failures
  are not retried.
- Clamps the requested output budget to 80% of the model's known context
  limit (unknown models are assumed to have 4096 tokens).
- Translates SDK / transport exceptions into the LLMServiceError hierarchy,
  one class per failure kind, each with its own user-facing message.

The retry loop suspends the calling request between attempts and cannot be
cancelled by the caller once started.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from booksoul.config import is_usable_api_key, settings

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LIMIT = 4096
TOKEN_BUDGET_RATIO = 0.8
BACKOFF_FACTOR = 1.5

MODEL_CONTEXT_LIMITS: Dict[str, int] = {
    "gemini-2.5-pro": 65536,
    "gemini-2.5-flash": 65536,
    "gemini-2.5-flash-lite": 65536,
    "gemini-2.0-flash": 8192,
    "gemini-2.0-flash-lite": 8192,
    "gemini-1.5-pro": 8192,
    "gemini-1.5-flash": 8192,
}

SYSTEM_INSTRUCTION = (
    "You are an expert book recommendation AI with deep knowledge of literature, "
    "psychology, and reader preferences. Always provide helpful, accurate, and "
    "personalized responses."
)


# =============================================================================
# ERRORS
# =============================================================================

class LLMServiceError(Exception):
    """Base class for completion failures surfaced to the caller."""

    kind: str = "ai_unavailable"
    status_code: int = 503
    retryable: bool = True
    default_message: str = "AI recommendation service is temporarily unavailable."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class LLMUnavailableError(LLMServiceError):
    """No usable credential is configured; raised before any agent runs."""
    kind = "service_unavailable"
    retryable = False
    default_message = (
        "AI recommendation service is currently unavailable. "
        "Please check your Gemini API configuration."
    )


class LLMQuotaExceededError(LLMServiceError):
    kind = "quota_exceeded"
    status_code = 429
    default_message = "AI service quota exceeded. Please check your Google AI billing settings."


class LLMInvalidCredentialError(LLMServiceError):
    kind = "invalid_credentials"
    status_code = 502
    retryable = False
    default_message = "Invalid Gemini API key. Please check your configuration."


class LLMRateLimitError(LLMServiceError):
    kind = "rate_limited"
    status_code = 429
    default_message = "AI service rate limit exceeded. Please try again in a few minutes."


class LLMContextLengthError(LLMServiceError):
    kind = "context_too_long"
    status_code = 502
    retryable = False
    default_message = (
        "The request is too long for the AI model. "
        "Please shorten your answers and try again."
    )


class LLMTimeoutError(LLMServiceError):
    kind = "timeout"
    default_message = "The AI service took too long to respond. Please try again."


class LLMNetworkError(LLMServiceError):
    kind = "network_error"
    default_message = "Cannot reach the AI service. Please check the network connection and try again."


class LLMGenericUnavailableError(LLMServiceError):
    kind = "ai_unavailable"

    def __init__(self, detail: Optional[str] = None):
        message = self.default_message
        if detail:
            message = f"AI recommendation service is temporarily unavailable: {detail}"
        super().__init__(message)


# =============================================================================
# HELPERS
# =============================================================================

def clamp_max_tokens(requested: int, model: str) -> int:
    """Clamp an output token budget to 80% of the model's context limit."""
    limit = MODEL_CONTEXT_LIMITS.get(model, DEFAULT_CONTEXT_LIMIT)
    return min(requested, int(limit * TOKEN_BUDGET_RATIO))


def classify_error(error: Exception) -> LLMServiceError:
    """Map an SDK or transport exception to its LLMServiceError kind."""
    if isinstance(error, LLMServiceError):
        return error

    if isinstance(error, genai_errors.APIError):
        code = error.code
        status = (error.status or "").upper()
        message = error.message or str(error)
        lowered = message.lower()

        if code == 429 or status == "RESOURCE_EXHAUSTED":
            if "quota" in lowered:
                return LLMQuotaExceededError()
            return LLMRateLimitError()
        if code in (401, 403) or status in ("UNAUTHENTICATED", "PERMISSION_DENIED") or "api key not valid" in lowered:
            return LLMInvalidCredentialError()
        if code == 400 and any(marker in lowered for marker in ("token", "exceed", "too long")):
            return LLMContextLengthError()
        if code in (408, 504) or status == "DEADLINE_EXCEEDED":
            return LLMTimeoutError()
        return LLMGenericUnavailableError(f"{code} {status}".strip())

    # TimeoutError subclasses OSError, so timeouts are checked first
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return LLMTimeoutError()
    if isinstance(error, (httpx.NetworkError, OSError)):
        return LLMNetworkError()

    return LLMGenericUnavailableError(type(error).__name__)


def _response_text(response: Any) -> str:
    """Extract text from a generate_content response (text property or parts)."""
    text = getattr(response, "text", None)
    if isinstance(text, str) and text.strip():
        return text

    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            part_text = getattr(part, "text", None)
            if isinstance(part_text, str) and part_text.strip():
                return part_text
    return ""


# =============================================================================
# CLIENT
# =============================================================================

class CompletionClient:
    """
    Async text-in/text-out completion adapter.

    Args:
        api_key: Gemini API key (defaults to settings.GOOGLE_API_KEY)
        model: Default model name (defaults to settings.GEMINI_MODEL)
        max_attempts: Total attempts per call (defaults to settings.LLM_MAX_ATTEMPTS)
        base_delay: Backoff base in seconds (defaults to settings.LLM_RETRY_BASE_DELAY)
        timeout_seconds: HTTP timeout per attempt
        client: Pre-built genai.Client (tests inject a fake here)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        timeout_seconds: Optional[int] = None,
        client: Optional[Any] = None,
    ):
        self.api_key = settings.GOOGLE_API_KEY if api_key is None else api_key
        self.model = model or settings.GEMINI_MODEL
        self.max_attempts = max(1, max_attempts if max_attempts is not None else settings.LLM_MAX_ATTEMPTS)
        self.base_delay = settings.LLM_RETRY_BASE_DELAY if base_delay is None else base_delay
        self.timeout_seconds = timeout_seconds or settings.LLM_TIMEOUT_SECONDS
        self._client = client

    def is_available(self) -> bool:
        """True when a credential (or an injected client) is present."""
        return self._client is not None or is_usable_api_key(self.api_key)

    def _get_client(self) -> Any:
        """Lazy initialization of the Gemini client."""
        if self._client is not None:
            return self._client

        if not is_usable_api_key(self.api_key):
            logger.error("GOOGLE_API_KEY not configured; completion client unavailable")
            raise LLMUnavailableError()

        self._client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=self.timeout_seconds * 1000),
        )
        logger.info("Gemini client initialized successfully")
        return self._client

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
    ) -> str:
        """
        Run one completion and return the response text.

        Raises:
            LLMUnavailableError: No credential configured
            LLMServiceError: Subclass describing the last failure after retries
        """
        client = self._get_client()
        model_name = model or self.model
        budget = clamp_max_tokens(max_tokens, model_name)

        config = types.GenerateContentConfig(
            system_instruction=system_instruction or SYSTEM_INSTRUCTION,
            temperature=temperature,
            max_output_tokens=budget,
        )

        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.debug(f"Gemini request (attempt {attempt}/{self.max_attempts}, model={model_name}, max_tokens={budget})")
                response = await client.aio.models.generate_content(
                    model=model_name,
                    contents=prompt,
                    config=config,
                )
                text = _response_text(response)
                if not text:
                    raise LLMGenericUnavailableError("Empty response from the AI service")
                logger.debug(f"Gemini response received ({len(text)} chars)")
                return text

            except Exception as e:
                error = classify_error(e)
                logger.warning(
                    f"Gemini attempt {attempt}/{self.max_attempts} failed: "
                    f"{error.kind} ({type(e).__name__})"
                )
                if not error.retryable or attempt >= self.max_attempts:
                    raise error from (None if error is e else e)

            delay = self.base_delay * (BACKOFF_FACTOR ** (attempt - 1))
            await asyncio.sleep(delay)

        # Unreachable: the loop either returns or raises
        raise LLMGenericUnavailableError()

    async def health_check(self) -> bool:
        """Send a tiny probe prompt; False on any completion failure."""
        if not self.is_available():
            logger.info("Health check: Gemini not configured")
            return False
        try:
            await self.complete('Say "OK" if you can respond.', max_tokens=10, temperature=0)
            return True
        except LLMServiceError as e:
            logger.error(f"Gemini health check failed: {e.kind}")
            return False


