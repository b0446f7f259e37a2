"""Gemini REST client used as the LLM gateway for book extraction."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from common.env import env
from common.logger import get_logger
from common.rate_limiter import RateLimiter

from .base import GenerationError, RateLimitError

logger = get_logger(__name__)

_shared_rate_limiter: RateLimiter | None = None


def get_shared_rate_limiter() -> RateLimiter:
    """Process-wide limiter shared by every client that doesn't bring its own."""
    global _shared_rate_limiter
    if _shared_rate_limiter is None:
        _shared_rate_limiter = RateLimiter(limit=env.llm_requests_per_minute(), window_ms=60_000)
    return _shared_rate_limiter


class GeminiClient:
    """Async client for the Gemini ``generateContent`` endpoint.

    Every request waits for admission from a sliding-window rate limiter.
    Requests rejected with a 429 are retried with exponential backoff
    (``2 ** attempt`` seconds); any other failure aborts immediately.

    API Documentation: https://ai.google.dev/api/generate-content
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize Gemini client.

        Args:
            api_key: API key (default: GOOGLE_GEMINI_API_KEY)
            model: Default model (default: GEMINI_MODEL)
            rate_limiter: Admission control (default: process-wide limiter)
            transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests
            sleep: Async sleep used for retry backoff
            timeout: Per-request timeout in seconds

        Raises:
            ValueError: If no API key is configured
        """
        self.api_key = api_key if api_key is not None else env.gemini_api_key()
        if not self.api_key:
            raise ValueError(
                "Google Gemini API key is required. "
                "Set GOOGLE_GEMINI_API_KEY in your environment variables."
            )

        self.model = model or env.gemini_model()
        self.rate_limiter = rate_limiter or get_shared_rate_limiter()
        self._sleep = sleep
        self._http_client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        retries: int = 3,
    ) -> str:
        """Generate text for a prompt.

        Args:
            prompt: Prompt text
            model: Model override for this call
            temperature: Sampling temperature
            max_tokens: Maximum output tokens
            retries: Maximum number of attempts

        Returns:
            Text of the first candidate

        Raises:
            GenerationError: If all attempts failed or a non-retryable error occurred
        """
        model = model or self.model
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }

        last_error: GenerationError | None = None
        attempts = 0

        for attempt in range(1, max(retries, 1) + 1):
            attempts = attempt
            await self.rate_limiter.admit()
            try:
                return await self._request(model, body)
            except RateLimitError as e:
                last_error = e
                if attempt >= retries:
                    break
                wait = 2**attempt
                logger.warning(f"Gemini rate limited (attempt {attempt}/{retries}), retrying in {wait}s")
                await self._sleep(wait)
            except GenerationError as e:
                last_error = e
                break

        detail = str(last_error) if last_error is not None else "unknown error"
        raise GenerationError(
            f"Failed to generate content after {attempts} attempts. Last error: {detail}",
            model=model,
            status_code=last_error.status_code if last_error else None,
            provider_code=last_error.provider_code if last_error else None,
            provider_message=last_error.provider_message if last_error else None,
            attempts=attempts,
        ) from last_error

    async def _request(self, model: str, body: dict[str, Any]) -> str:
        """Issue a single generateContent call."""
        logger.debug(f"POST {model}:generateContent")
        try:
            response = await self._http_client.post(
                f"/{model}:generateContent", params={"key": self.api_key}, json=body
            )
        except httpx.HTTPError as e:
            raise GenerationError(f"Gemini request failed: {e}", model=model) from e

        if response.is_error:
            raise self._error_from_response(model, response)

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError(
                "Gemini API returned a non-JSON response", model=model, status_code=response.status_code
            ) from e

        candidates = data.get("candidates") or []
        if not candidates:
            raise GenerationError("No response generated from Gemini API", model=model)

        try:
            return candidates[0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("Gemini API response has no candidate text", model=model) from e

    @staticmethod
    def _error_from_response(model: str, response: httpx.Response) -> GenerationError:
        """Build a descriptive error from a non-2xx response body."""
        provider_code: int | str | None = response.status_code
        provider_message = response.reason_phrase or "request failed"
        try:
            error_body = response.json().get("error", {})
            provider_code = error_body.get("code", provider_code)
            provider_message = error_body.get("message", provider_message)
        except (ValueError, AttributeError):
            if response.text:
                provider_message = response.text[:200]

        message = f"Gemini API error: {provider_message} ({provider_code})"
        error_class = (
            RateLimitError if response.status_code == 429 or "429" in message else GenerationError
        )
        return error_class(
            message,
            model=model,
            status_code=response.status_code,
            provider_code=provider_code,
            provider_message=provider_message,
        )

    async def test_connection(self) -> bool:
        """Check that the API key and model work.

        Returns:
            True if the model answered "OK"
        """
        try:
            response = await self.generate(
                'Respond with "OK" if you can read this message.', max_tokens=10, temperature=0
            )
        except GenerationError as e:
            logger.error(f"Gemini API connection test failed: {e}")
            return False
        return response.strip().lower() == "ok"

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
