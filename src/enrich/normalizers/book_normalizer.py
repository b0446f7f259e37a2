"""Book metadata normalizer for Google Books API responses."""

from typing import Any

from .base import Normalizer

# Preferred cover sizes, best first
_COVER_SIZES = ("large", "medium", "thumbnail", "smallThumbnail")


class GoogleBooksNormalizer(Normalizer):
    """Normalize a Google Books volume item to ``Book`` fields."""

    def normalize(self, api_response: dict[str, Any], source: str = "google_books") -> dict[str, Any]:
        """Convert a Google Books volume item.

        Args:
            api_response: One item from the volumes response
            source: Should be 'google_books'

        Returns:
            Dictionary with keys: isbn, isbn13, isbn10, publisher, published_date,
            description, page_count, categories, average_rating, ratings_count,
            language, info_link, cover_image, google_books_id

        Raises:
            ValueError: If the item has no volumeInfo
        """
        if source != "google_books":
            raise ValueError(f"GoogleBooksNormalizer only handles 'google_books' source, got '{source}'")

        volume = api_response.get("volumeInfo")
        if not isinstance(volume, dict):
            raise ValueError("Google Books item has no volumeInfo")

        isbn13 = self._extract_isbn(volume, "ISBN_13")
        isbn10 = self._extract_isbn(volume, "ISBN_10")

        return {
            "isbn": isbn13 or isbn10,
            "isbn13": isbn13,
            "isbn10": isbn10,
            "publisher": volume.get("publisher"),
            "published_date": volume.get("publishedDate"),
            "description": volume.get("description"),
            "page_count": volume.get("pageCount"),
            "categories": list(volume.get("categories") or []),
            "average_rating": volume.get("averageRating"),
            "ratings_count": volume.get("ratingsCount"),
            "language": volume.get("language"),
            "info_link": volume.get("infoLink"),
            "cover_image": self._extract_cover(volume),
            "google_books_id": api_response.get("id"),
        }

    def _extract_isbn(self, volume: dict[str, Any], kind: str) -> str | None:
        for identifier in volume.get("industryIdentifiers") or []:
            if identifier.get("type") == kind:
                return identifier.get("identifier")
        return None

    def _extract_cover(self, volume: dict[str, Any]) -> str | None:
        for size in _COVER_SIZES:
            url = self._safe_get(volume, "imageLinks", size)
            if url:
                return url
        return None
