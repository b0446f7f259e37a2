"""Environment configuration interface for podcast-books.

This module provides a clean interface for accessing environment variables,
centralizing all environment variable access in one place.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

FOUNDERS_FEED_URL = "https://feeds.megaphone.fm/DSLLC6297708582"


class Environment:
    """Interface for accessing environment configuration."""

    @staticmethod
    def gemini_api_key() -> str:
        """Get the Google Gemini API key.

        Returns:
            API key, or empty string if not configured
        """
        return os.getenv("GOOGLE_GEMINI_API_KEY", "")

    @staticmethod
    def gemini_model() -> str:
        """Get the Gemini model used for extraction.

        Returns:
            Model name, defaults to 'gemini-2.5-flash-lite-preview-06-17'
        """
        return os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite-preview-06-17")

    @staticmethod
    def google_books_api_key() -> str:
        """Get the Google Books API key (optional).

        Returns:
            API key, or empty string if not configured
        """
        return os.getenv("GOOGLE_BOOKS_API_KEY", "")

    @staticmethod
    def feed_url() -> str:
        """Get the podcast RSS feed URL.

        Returns:
            Feed URL, defaults to the Founders podcast feed
        """
        return os.getenv("PODCAST_FEED_URL", FOUNDERS_FEED_URL)

    @staticmethod
    def database_type() -> str:
        """Get the database type.

        Returns:
            Database type, defaults to 'sqlite'
        """
        return os.getenv("DATABASE_TYPE", "sqlite")

    @staticmethod
    def database_path() -> Path:
        """Get the SQLite database file path.

        Returns:
            Path to SQLite database file, defaults to ./data/podcast_books.db
        """
        return Path(os.getenv("DATABASE_PATH", "./data/podcast_books.db"))

    @staticmethod
    def llm_requests_per_minute() -> int:
        """Get the LLM admission capacity per 60 second window.

        Returns:
            Requests per minute, defaults to 4000
        """
        return int(os.getenv("LLM_REQUESTS_PER_MINUTE", "4000"))

    @staticmethod
    def books_api_requests_per_minute() -> int:
        """Get the Google Books admission capacity per 60 second window.

        Returns:
            Requests per minute, defaults to 100
        """
        return int(os.getenv("BOOKS_API_REQUESTS_PER_MINUTE", "100"))

    @staticmethod
    def extraction_batch_size() -> int:
        """Get the number of episodes extracted concurrently.

        Returns:
            Batch size, defaults to 5
        """
        return int(os.getenv("EXTRACTION_BATCH_SIZE", "5"))

    @staticmethod
    def extraction_batch_delay() -> float:
        """Get the pause between extraction batches.

        Returns:
            Delay in seconds, defaults to 1.0
        """
        return float(os.getenv("EXTRACTION_BATCH_DELAY_SECONDS", "1.0"))

    @staticmethod
    def context_ttl_seconds() -> int:
        """Get how long preserved episode context stays usable.

        Returns:
            TTL in seconds, defaults to 86400 (24 hours)
        """
        return int(os.getenv("CONTEXT_TTL_SECONDS", "86400"))

    @staticmethod
    def extraction_cache_ttl_seconds() -> int:
        """Get how long per-episode extraction results are cached.

        Returns:
            TTL in seconds, defaults to 86400 (24 hours)
        """
        return int(os.getenv("EXTRACTION_CACHE_TTL_SECONDS", "86400"))

    @staticmethod
    def validate() -> list[str]:
        """Check required configuration.

        Returns:
            List of human-readable problems (empty when configuration is usable)
        """
        errors = []
        if not Environment.gemini_api_key():
            errors.append("GOOGLE_GEMINI_API_KEY is required")
        if Environment.database_type().lower() != "sqlite":
            errors.append(f"Unsupported DATABASE_TYPE: {Environment.database_type()}")
        return errors


# Singleton instance for convenient access
env = Environment()
