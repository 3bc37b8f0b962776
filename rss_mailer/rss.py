"""RSS Feed Processing module for RSS Mailer."""

from urllib.parse import urlparse

import feedparser
import requests
from bs4 import BeautifulSoup

from .logging_config import create_execution_logger
from .models import FeedItem

ALLOWED_SCHEMES = ("http", "https")


class FeedFetchError(Exception):
    """Raised when the feed cannot be downloaded or parsed."""


class FeedProcessor:
    """Handles RSS/Atom feed retrieval and normalization."""

    def __init__(self, timeout: int = 30, execution_id: str | None = None):
        """Initialize FeedProcessor with configuration.

        Args:
            timeout: HTTP request timeout in seconds
            execution_id: Execution ID for logging context
        """
        self.timeout = timeout
        self.logger = create_execution_logger("feed_processor", execution_id)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "RSS-Mailer/1.0 (RSS to Gmail)"})

        self.logger.info("FeedProcessor initialized", timeout=timeout)

    def fetch(self, feed_url: str) -> list[FeedItem]:
        """Download and parse a single RSS/Atom feed.

        Args:
            feed_url: URL of the RSS/Atom feed

        Returns:
            FeedItem objects in feed order

        Raises:
            FeedFetchError: If the URL is invalid, the download fails, or
                the content is not a parseable feed
        """
        self.logger.info("Starting to fetch feed", feed_url=feed_url)

        parsed_url = urlparse(feed_url)
        if parsed_url.scheme not in ALLOWED_SCHEMES:
            error_msg = f"Feed URL must use HTTP or HTTPS: {feed_url}"
            self.logger.error(error_msg, feed_url=feed_url, scheme=parsed_url.scheme)
            raise FeedFetchError(error_msg)

        try:
            response = self.session.get(feed_url, timeout=self.timeout)
            response.raise_for_status()
            self.logger.info(
                "Feed downloaded successfully",
                feed_url=feed_url,
                status_code=response.status_code,
                content_length=len(response.content),
            )
        except requests.RequestException as e:
            self.logger.error(
                f"Failed to download feed {feed_url}: {e}",
                feed_url=feed_url,
                error=str(e),
            )
            raise FeedFetchError(f"Failed to download feed {feed_url}: {e}") from e

        feed = feedparser.parse(response.content)

        if feed.bozo and hasattr(feed, "bozo_exception"):
            if not feed.entries:
                raise FeedFetchError(
                    f"Failed to parse feed {feed_url}: {feed.bozo_exception}"
                )
            self.logger.warning(
                f"Feed parsing warning for {feed_url}: {feed.bozo_exception}",
                feed_url=feed_url,
                bozo_exception=str(feed.bozo_exception),
            )

        items = []
        for entry in feed.entries:
            try:
                items.append(self.normalize_item(entry, feed_url))
            except Exception as e:
                self.logger.warning(
                    f"Failed to normalize entry from {feed_url}: {e}",
                    feed_url=feed_url,
                    error=str(e),
                )
                continue

        self.logger.info(
            "Successfully parsed feed",
            feed_url=feed_url,
            items_count=len(items),
            total_entries=len(feed.entries),
        )
        return items

    def normalize_item(self, raw_item, feed_url: str) -> FeedItem:
        """Normalize a raw feed entry into a FeedItem.

        The identity is the entry id/guid when present, otherwise its link.
        An entry with neither gets an empty identity and is skipped later.

        Args:
            raw_item: Raw feed entry from feedparser
            feed_url: Source feed URL

        Returns:
            Normalized FeedItem object
        """
        title = getattr(raw_item, "title", None) or "No Title"

        link = self._first_text(getattr(raw_item, "link", None))
        if not link:
            for entry_link in getattr(raw_item, "links", None) or []:
                href = self._first_text(entry_link.get("href"))
                if href:
                    link = href
                    break

        identity = self._first_text(
            getattr(raw_item, "id", None), getattr(raw_item, "guid", None), link
        )

        summary = ""
        if getattr(raw_item, "summary", None):
            summary = raw_item.summary
        elif getattr(raw_item, "description", None):
            summary = raw_item.description
        elif getattr(raw_item, "content", None):
            # Atom content is a list of dicts
            if isinstance(raw_item.content, list):
                summary = raw_item.content[0].get("value", "")
            else:
                summary = str(raw_item.content)

        summary = self.clean_html_content(summary)

        return FeedItem(
            identity=identity,
            title=title,
            link=link or identity,
            summary=summary or None,
            feed_url=feed_url,
        )

    @staticmethod
    def _first_text(*values) -> str:
        for value in values:
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""

    def clean_html_content(self, content: str) -> str:
        """Remove HTML tags from content and normalize whitespace.

        Args:
            content: Raw content that may contain HTML

        Returns:
            Clean text content without HTML tags
        """
        if not content:
            return ""

        if "<" not in content and ">" not in content:
            return " ".join(content.split())

        soup = BeautifulSoup(content, "html.parser")

        for script in soup(["script", "style"]):
            script.decompose()

        text = soup.get_text(separator=" ")
        return " ".join(text.split())
