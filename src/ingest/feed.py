"""RSS feed text source for podcast episodes."""

import re
from datetime import datetime, timezone

import requests
from bs4 import BeautifulSoup

from common.dates import parse_date, to_utc
from common.env import env
from common.logger import get_logger
from load.models import Episode

logger = get_logger(__name__)


class FeedError(Exception):
    """The feed could not be fetched or parsed."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


def clean_text(html: str | None) -> str:
    """Strip HTML from feed text, keeping links as ``[text](url)``.

    Example:
        >>> clean_text('Read <a href="https://example.com">Steve Jobs</a><br/>today')
        'Read [Steve Jobs](https://example.com) today'
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for anchor in soup.find_all("a", href=True):
        anchor.replace_with(f"[{anchor.get_text(strip=True)}]({anchor['href']})")
    text = soup.get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()


def parse_pub_date(value: str) -> str:
    """Parse an RFC 2822 ``pubDate`` into an ISO timestamp (now if unparsable)."""
    parsed = parse_date(value)
    if parsed is None:
        logger.warning(f"Invalid pubDate format: {value!r}")
        return datetime.now(timezone.utc).isoformat()
    return to_utc(parsed).isoformat()


def episode_id_from_guid(guid: str, index: int) -> str:
    if guid and guid.strip():
        return re.sub(r"[^a-zA-Z0-9]", "-", guid.strip()).lower()
    return f"episode-{index}"


class RssFeedSource:
    """Fetches and parses a podcast RSS feed into episodes.

    Example:
        >>> source = RssFeedSource()
        >>> episodes = source.fetch_episodes()
    """

    DEFAULT_TIMEOUT = 30

    def __init__(self, feed_url: str | None = None, timeout: int = DEFAULT_TIMEOUT):
        """Initialize feed source.

        Args:
            feed_url: RSS feed URL (default: PODCAST_FEED_URL)
            timeout: Request timeout in seconds
        """
        self.feed_url = feed_url or env.feed_url()
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": "podcast-books/1.0",
                "Accept": "application/rss+xml, application/xml, text/xml",
            }
        )

    def fetch_episodes(self) -> list[Episode]:
        """Fetch the feed and parse its items.

        Returns:
            Episodes in feed order (newest first for most feeds)

        Raises:
            FeedError: If the feed can't be fetched, is empty, or has no valid episodes
        """
        logger.info(f"Fetching feed from {self.feed_url}...")
        try:
            response = self.session.get(self.feed_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FeedError(f"Failed to fetch RSS feed: {e}", "FETCH_ERROR") from e

        if not response.content or not response.content.strip():
            raise FeedError("Empty RSS feed response", "EMPTY_FEED")

        return self.parse(response.content)

    def parse(self, content: bytes | str) -> list[Episode]:
        """Parse RSS XML into episodes, skipping items that lack required fields."""
        soup = BeautifulSoup(content, "xml")
        channel = soup.find("channel")
        if channel is None:
            raise FeedError("Invalid RSS feed structure: missing channel", "INVALID_STRUCTURE")

        items = channel.find_all("item")
        if not items:
            return []

        episodes = []
        for index, item in enumerate(items):
            episode = self._parse_item(item, index)
            if episode is not None:
                episodes.append(episode)

        if not episodes:
            raise FeedError("No valid episodes found in RSS feed", "NO_EPISODES")

        logger.info(f"Parsed {len(episodes)} episode(s)")
        return episodes

    def _parse_item(self, item, index: int) -> Episode | None:
        def text_of(name: str) -> str:
            tag = item.find(name)
            return tag.get_text(strip=True) if tag else ""

        title, description, pub_date = text_of("title"), text_of("description"), text_of("pubDate")
        if not title or not description or not pub_date:
            logger.warning(f"Skipping episode {index}: missing title, description or pubDate")
            return None

        # content:encoded carries the richer HTML (with links) when present
        encoded = text_of("content:encoded") or text_of("encoded")
        link = text_of("link")
        guid = text_of("guid") or link or f"{title}-{pub_date}"

        return Episode(
            id=episode_id_from_guid(guid, index),
            title=clean_text(title),
            description=clean_text(encoded or description),
            pub_date=parse_pub_date(pub_date),
            link=link,
            guid=guid,
        )
