"""RSS Feed Processing module for News Signal Bot."""

import calendar
from datetime import UTC, datetime, timedelta

import feedparser
import requests
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from . import constants
from .logging_config import create_execution_logger
from .models import NewsItem


class FeedProcessor:
    """Fetches one RSS/Atom feed and normalizes its entries into NewsItems."""

    def __init__(
        self,
        source_name: str,
        feed_url: str,
        timeout: int = constants.DEFAULT_HTTP_TIMEOUT,
        execution_id: str | None = None,
    ):
        """Initialize FeedProcessor for a single source.

        Args:
            source_name: Display name of the news source
            feed_url: URL of the RSS/Atom feed
            timeout: HTTP request timeout in seconds
            execution_id: Execution ID for logging context
        """
        self.source_name = source_name
        self.feed_url = feed_url
        self.timeout = timeout
        self.logger = create_execution_logger("feed_processor", execution_id)
        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": constants.USER_AGENT,
                "Accept": constants.ACCEPT,
                "Accept-Language": constants.ACCEPT_LANGUAGE,
            }
        )

    def fetch(self, since: datetime) -> list[NewsItem]:
        """Fetch the feed and return items published strictly after `since`.

        Args:
            since: Timezone-aware cutoff

        Returns:
            NewsItems newer than the cutoff, in feed order

        Raises:
            requests.RequestException: If the feed download fails
        """
        self.logger.info(
            "Fetching feed",
            source_name=self.source_name,
            feed_url=self.feed_url,
        )

        try:
            response = self.session.get(self.feed_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.error(
                f"Failed to download feed {self.feed_url}: {e}",
                source_name=self.source_name,
                feed_url=self.feed_url,
                error=str(e),
            )
            raise
        finally:
            self.session.close()

        feed = feedparser.parse(response.content)

        if feed.bozo and hasattr(feed, "bozo_exception"):
            self.logger.warning(
                f"Feed parsing warning for {self.feed_url}: {feed.bozo_exception}",
                source_name=self.source_name,
                feed_url=self.feed_url,
            )

        feed_title = feed.feed.get("title", self.source_name)
        self.logger.info(
            f"Fetching news from: {feed_title}",
            source_name=self.source_name,
            feed_url=self.feed_url,
        )

        cutoff = to_utc(since)
        items = []
        for entry in feed.entries:
            item = self.normalize_item(entry)
            if item is not None and item.published_on > cutoff:
                items.append(item)

        self.logger.info(
            "Successfully parsed feed",
            source_name=self.source_name,
            feed_url=self.feed_url,
            items_count=len(items),
            total_entries=len(feed.entries),
        )
        return items

    def normalize_item(self, entry) -> NewsItem | None:
        """Normalize a feedparser entry into a NewsItem.

        Returns None (and logs a warning) when the publication time
        can't be determined.
        """
        title = entry.get("title", "") or ""

        published_on = self.parse_published(entry)
        if published_on is None:
            self.logger.warning(
                f"Could not determine publication date for: {title}",
                source_name=self.source_name,
                item_title=title,
            )
            return None

        return NewsItem(
            title=title,
            link=entry.get("link", "") or "",
            content=clean_html_content(extract_content(entry)),
            published_on=published_on,
            source_name=self.source_name,
            image_url=extract_image_url(entry),
        )

    def parse_published(self, entry) -> datetime | None:
        """Resolve an entry's publication time as an aware UTC datetime."""
        for key in ("published_parsed", "updated_parsed"):
            parsed = entry.get(key)
            if parsed:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=UTC)

        raw = entry.get("published") or entry.get("updated")
        if not raw:
            return None

        return parse_date_string(self.prepare_date_string(raw))

    def prepare_date_string(self, raw: str) -> str:
        return raw


class LocalizedDateFeedProcessor(FeedProcessor):
    """FeedProcessor for feeds that publish localized month/weekday names."""

    def __init__(self, *args, date_tokens: dict[str, str], **kwargs):
        super().__init__(*args, **kwargs)
        # Longest tokens first so no token is shadowed by a shorter prefix
        self.date_tokens = sorted(
            date_tokens.items(), key=lambda pair: len(pair[0]), reverse=True
        )

    def prepare_date_string(self, raw: str) -> str:
        return translate_date_tokens(raw, self.date_tokens)


def translate_date_tokens(raw: str, tokens) -> str:
    """Replace localized date tokens with their English equivalents."""
    items = tokens.items() if isinstance(tokens, dict) else tokens
    for local, english in items:
        raw = raw.replace(local, english)
    return raw


def create_fetcher(
    source_name: str,
    feed_url: str,
    timeout: int = constants.DEFAULT_HTTP_TIMEOUT,
    execution_id: str | None = None,
) -> FeedProcessor:
    """Return the fetcher appropriate for a source."""
    date_tokens = constants.LOCALIZED_DATE_SOURCES.get(source_name)
    if date_tokens:
        return LocalizedDateFeedProcessor(
            source_name,
            feed_url,
            timeout=timeout,
            execution_id=execution_id,
            date_tokens=date_tokens,
        )
    return FeedProcessor(
        source_name, feed_url, timeout=timeout, execution_id=execution_id
    )


# A field dateutil takes from its default differs between these two
_FALLBACK_DATES = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def parse_date_string(raw: str) -> datetime | None:
    """Parse a free-form timestamp, rejecting ones without a full calendar date.

    dateutil fills missing fields from a default, so "12" or "10:00" would
    otherwise become a date in the current month.
    """
    try:
        first, second = (
            date_parser.parse(raw, default=default) for default in _FALLBACK_DATES
        )
    except (ValueError, TypeError, OverflowError):
        return None

    if first.date() != second.date():
        return None
    return to_utc(first)


def to_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def extract_content(entry) -> str:
    """Pick the richest body available: content, then summary/description."""
    content = entry.get("content")
    if isinstance(content, list) and content:
        value = content[0].get("value", "")
        if value:
            return value

    return entry.get("summary") or entry.get("description") or ""


def extract_image_url(entry) -> str | None:
    """Find an image attached to the entry via media tags or enclosures."""
    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            url = media.get("url")
            medium = media.get("medium", "image")
            if url and (medium == "image" or key == "media_thumbnail"):
                return url

    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and str(link.get("type", "")).startswith(
            "image/"
        ):
            return link.get("href")

    return None


def clean_html_content(content: str | None) -> str:
    """Remove HTML tags from content and normalize whitespace.

    Args:
        content: Raw content that may contain HTML

    Returns:
        Clean text content without HTML tags
    """
    if not content:
        return ""

    if "<" in content or ">" in content:
        soup = BeautifulSoup(content, "html.parser")

        for script in soup(["script", "style"]):
            script.decompose()

        content = soup.get_text(separator=" ")

    return " ".join(content.split())


def cutoff_since(hours: int, now: datetime | None = None) -> datetime:
    """Return the aware UTC cutoff `hours` before now."""
    now = now or datetime.now(UTC)
    return to_utc(now) - timedelta(hours=hours)
