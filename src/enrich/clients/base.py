"""Abstract base class for book metadata API clients."""

from abc import ABC, abstractmethod
from typing import Any


class APIClient(ABC):
    """Base class for book metadata API clients.

    Implementations return raw API responses; turning them into book fields
    is the job of a normalizer.
    """

    @abstractmethod
    def search_by_title_and_author(self, title: str, author: str) -> list[dict[str, Any]]:
        """Search for candidate volumes by title and author.

        Args:
            title: Book title
            author: Author name

        Returns:
            Raw volume items (possibly empty)

        Raises:
            APIError: If API request fails
            RateLimitError: If rate limit is exceeded
        """
        pass

    @abstractmethod
    def search_by_isbn(self, isbn: str) -> list[dict[str, Any]]:
        """Search for volumes by ISBN.

        Returns:
            Raw volume items (possibly empty)

        Raises:
            APIError: If API request fails
            RateLimitError: If rate limit is exceeded
        """
        pass

    @abstractmethod
    def get_rate_limit(self) -> tuple[int, int]:
        """Get rate limit configuration for this API.

        Returns:
            Tuple of (requests_per_period, period_seconds)
            Example: (100, 60) means 100 requests per 60 seconds
        """
        pass


class EnrichmentError(Exception):
    """Base exception for enrichment errors."""

    pass


class APIError(EnrichmentError):
    """API request failed."""

    pass


class RateLimitError(EnrichmentError):
    """Rate limit exceeded."""

    pass
