"""Abstract base class for metadata normalizers."""

from abc import ABC, abstractmethod
from typing import Any


class Normalizer(ABC):
    """Base class for API response normalizers.

    Normalizers convert external API responses into a patch of ``Book``
    fields. Each API source has its own normalizer for its response shape.
    """

    @abstractmethod
    def normalize(self, api_response: dict[str, Any], source: str) -> dict[str, Any]:
        """Convert an API response into Book field values.

        Args:
            api_response: Raw API response dictionary
            source: Source identifier (e.g., 'google_books')

        Returns:
            Dictionary whose keys are ``Book`` field names. Missing values are None.

        Raises:
            ValueError: If the response is malformed or from the wrong source
        """
        pass

    def _safe_get(self, data: dict[str, Any], *keys: str, default: Any = None) -> Any:
        """Safely navigate nested dictionary keys.

        Example:
            >>> self._safe_get({'a': {'b': {'c': 1}}}, 'a', 'b', 'c')
            1
            >>> self._safe_get({'a': {}}, 'a', 'b', 'c', default='missing')
            'missing'
        """
        current = data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current
