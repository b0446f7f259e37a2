"""Error types for LLM gateway calls."""


class LLMError(Exception):
    """Base exception for LLM gateway errors."""

    pass


class GenerationError(LLMError):
    """A generation request failed after exhausting retries, or failed non-retryably.

    Carries whatever the provider told us about the failure so callers can log
    a descriptive message.
    """

    def __init__(
        self,
        message: str,
        model: str | None = None,
        status_code: int | None = None,
        provider_code: int | str | None = None,
        provider_message: str | None = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.model = model
        self.status_code = status_code
        self.provider_code = provider_code
        self.provider_message = provider_message
        self.attempts = attempts


class RateLimitError(GenerationError):
    """Provider rejected the request with a rate limit (HTTP 429) signature."""

    pass


class ParseError(LLMError):
    """Model output was not valid JSON after stripping code fences.

    Never raised past ``parse_json_response``; the parser records it on the
    fallback payload instead.
    """

    pass
