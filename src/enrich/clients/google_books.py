"""Google Books API client for book metadata enrichment."""

from typing import Any

import requests

from common.env import env
from common.logger import get_logger
from common.rate_limiter import RateLimiter

from .base import APIClient, APIError, RateLimitError

logger = get_logger(__name__)


class GoogleBooksClient(APIClient):
    """Client for the Google Books volumes API.

    Google Books provides ISBNs, publisher, publication date, description,
    page count, categories, ratings and cover images. An API key is optional
    but raises the daily quota.

    API Documentation: https://developers.google.com/books/docs/v1/using
    """

    BASE_URL = "https://www.googleapis.com/books/v1"
    VOLUMES_URL = f"{BASE_URL}/volumes"

    def __init__(
        self,
        api_key: str | None = None,
        requests_per_minute: int | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        """Initialize Google Books client.

        Args:
            api_key: API key (default: GOOGLE_BOOKS_API_KEY, may be empty)
            requests_per_minute: Rate limit (default: BOOKS_API_REQUESTS_PER_MINUTE)
            rate_limiter: Custom limiter (mostly for tests)
        """
        self.api_key = api_key if api_key is not None else env.google_books_api_key()
        self.requests_per_minute = requests_per_minute or env.books_api_requests_per_minute()
        self.rate_limiter = rate_limiter or RateLimiter(
            limit=self.requests_per_minute, window_ms=60_000
        )
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "podcast-books/1.0"})

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def search_books(self, query: str, max_results: int = 5) -> list[dict[str, Any]]:
        """Run a volumes query.

        Args:
            query: Google Books query string (e.g. 'intitle:"Dune"')
            max_results: Maximum number of items

        Returns:
            Raw volume items (empty if nothing matched)

        Raises:
            APIError: If API request fails
            RateLimitError: If rate limit is exceeded
        """
        params: dict[str, Any] = {"q": query, "maxResults": max_results}
        if self.api_key:
            params["key"] = self.api_key

        self.rate_limiter.wait_if_needed()
        logger.debug(f"Google Books query: {query}")

        try:
            response = self.session.get(self.VOLUMES_URL, params=params, timeout=10)
        except requests.exceptions.Timeout as e:
            raise APIError(f"Google Books API timeout for query {query!r}") from e
        except requests.exceptions.RequestException as e:
            raise APIError(f"Google Books API error: {e}") from e

        if response.status_code == 429:
            raise RateLimitError("Google Books rate limit exceeded")
        if response.status_code != 200:
            raise APIError(f"Google Books API error: {response.status_code} {response.reason}")

        try:
            data = response.json()
        except ValueError as e:
            raise APIError("Google Books API returned invalid JSON") from e

        return data.get("items") or []

    def search_by_title_and_author(self, title: str, author: str) -> list[dict[str, Any]]:
        return self.search_books(f'intitle:"{title}" inauthor:"{author}"', max_results=3)

    def search_by_isbn(self, isbn: str) -> list[dict[str, Any]]:
        return self.search_books(f"isbn:{isbn}", max_results=1)

    def get_rate_limit(self) -> tuple[int, int]:
        return (self.requests_per_minute, 60)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
