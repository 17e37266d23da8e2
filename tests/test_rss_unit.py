"""Unit tests for the RSS fetchers."""

import logging
import time
from datetime import UTC, datetime
from unittest.mock import Mock, patch

import pytest
import requests
from feedparser import FeedParserDict

from news_signal_bot.constants import RUSSIAN_DATE_TOKENS
from news_signal_bot.models import NewsItem
from news_signal_bot.rss import (
    FeedProcessor,
    LocalizedDateFeedProcessor,
    clean_html_content,
    create_fetcher,
    cutoff_since,
    translate_date_tokens,
)

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Example News</title>
    <link>https://news.example.com/</link>
    <description>Example</description>
    <item>
      <title>Fresh story</title>
      <link>https://news.example.com/fresh</link>
      <description>&lt;p&gt;Something &lt;b&gt;big&lt;/b&gt; happened.&lt;/p&gt;</description>
      <pubDate>Tue, 02 Jan 2024 12:00:00 GMT</pubDate>
      <media:content url="https://news.example.com/fresh.jpg" medium="image" />
    </item>
    <item>
      <title>Old story</title>
      <link>https://news.example.com/old</link>
      <description>Yesterday's news.</description>
      <pubDate>Sat, 30 Dec 2023 08:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Undated story</title>
      <link>https://news.example.com/undated</link>
      <description>No date at all.</description>
    </item>
  </channel>
</rss>
"""

SINCE = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)


def feed_response(body: str) -> Mock:
    response = Mock()
    response.content = body.encode("utf-8")
    response.status_code = 200
    response.raise_for_status = Mock()
    return response


def make_entry(**fields) -> FeedParserDict:
    return FeedParserDict(fields)


class TestFeedProcessorUnit:
    """Unit tests for FeedProcessor."""

    def setup_method(self):
        self.processor = FeedProcessor("Example", "https://news.example.com/rss")

    def test_session_sends_browser_like_headers(self):
        headers = self.processor.session.headers

        assert headers["User-Agent"].startswith("Mozilla/5.0")
        assert "application/xml" in headers["Accept"]
        assert headers["Accept-Language"] == "en-US,en;q=0.9"

    def test_fetch_filters_by_cutoff_and_drops_undated(self, caplog):
        caplog.set_level(logging.WARNING)

        with patch.object(
            self.processor.session, "get", return_value=feed_response(RSS_FEED)
        ) as mock_get:
            items = self.processor.fetch(SINCE)

        mock_get.assert_called_once_with(
            "https://news.example.com/rss", timeout=self.processor.timeout
        )
        assert [item.title for item in items] == ["Fresh story"]

        item = items[0]
        assert isinstance(item, NewsItem)
        assert item.link == "https://news.example.com/fresh"
        assert item.content == "Something big happened."
        assert item.published_on == datetime(2024, 1, 2, 12, 0, tzinfo=UTC)
        assert item.source_name == "Example"
        assert item.image_url == "https://news.example.com/fresh.jpg"

        assert any(
            "Could not determine publication date for: Undated story" in record.getMessage()
            for record in caplog.records
        )

    def test_fetch_propagates_http_errors(self):
        response = feed_response("")
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")

        with patch.object(self.processor.session, "get", return_value=response):
            with pytest.raises(requests.HTTPError):
                self.processor.fetch(SINCE)

    def test_fetch_propagates_connection_errors(self):
        with patch.object(
            self.processor.session,
            "get",
            side_effect=requests.ConnectionError("connection refused"),
        ):
            with pytest.raises(requests.RequestException):
                self.processor.fetch(SINCE)

    def test_cutoff_is_strict(self):
        body = RSS_FEED.replace("Tue, 02 Jan 2024 12:00:00 GMT", "Mon, 01 Jan 2024 00:00:00 GMT")

        with patch.object(self.processor.session, "get", return_value=feed_response(body)):
            items = self.processor.fetch(SINCE)

        assert items == []

    def test_normalize_prefers_content_over_summary(self):
        entry = make_entry(
            title="Atom entry",
            link="https://news.example.com/atom",
            content=[{"value": "<div><h2>Full</h2><p>body</p></div>"}],
            summary="short summary",
            published_parsed=time.strptime("2024-01-02 10:00", "%Y-%m-%d %H:%M"),
        )

        item = self.processor.normalize_item(entry)

        assert item.content == "Full body"

    def test_normalize_falls_back_to_updated_parsed(self):
        entry = make_entry(
            title="Updated only",
            link="https://news.example.com/u",
            updated_parsed=time.strptime("2024-01-03 06:30", "%Y-%m-%d %H:%M"),
        )

        item = self.processor.normalize_item(entry)

        assert item.published_on == datetime(2024, 1, 3, 6, 30, tzinfo=UTC)

    def test_normalize_parses_raw_date_string_to_utc(self):
        entry = make_entry(
            title="Raw date",
            link="https://news.example.com/raw",
            published="2024-01-02T15:00:00+03:00",
        )

        item = self.processor.normalize_item(entry)

        assert item.published_on == datetime(2024, 1, 2, 12, 0, tzinfo=UTC)

    def test_naive_raw_date_is_taken_as_utc(self):
        entry = make_entry(title="Naive", link="", published="2024-01-02 09:15:00")

        item = self.processor.normalize_item(entry)

        assert item.published_on == datetime(2024, 1, 2, 9, 15, tzinfo=UTC)

    def test_unparseable_date_returns_none_and_warns(self, caplog):
        caplog.set_level(logging.WARNING)
        entry = make_entry(title="Broken", link="", published="когда-то давно")

        assert self.processor.normalize_item(entry) is None
        assert any("Broken" in record.getMessage() for record in caplog.records)

    @pytest.mark.parametrize("raw", ["12", "10:00", "March 5", "2024"])
    def test_date_fragment_is_not_a_timestamp(self, raw, caplog):
        caplog.set_level(logging.WARNING)
        entry = make_entry(title="Fragment", link="", published=raw)

        assert self.processor.parse_published(entry) is None
        assert self.processor.normalize_item(entry) is None
        assert any("Fragment" in record.getMessage() for record in caplog.records)

    def test_date_without_time_is_accepted(self):
        entry = make_entry(title="Day only", link="", published="Tue, 02 Jan 2024")

        item = self.processor.normalize_item(entry)

        assert item.published_on == datetime(2024, 1, 2, tzinfo=UTC)

    def test_enclosure_image_is_extracted(self):
        entry = make_entry(
            title="Enclosure",
            link="",
            links=[
                {"rel": "alternate", "href": "https://news.example.com/e"},
                {"rel": "enclosure", "type": "image/jpeg", "href": "https://cdn.example.com/e.jpg"},
            ],
            published_parsed=time.strptime("2024-01-02", "%Y-%m-%d"),
        )

        item = self.processor.normalize_item(entry)

        assert item.image_url == "https://cdn.example.com/e.jpg"

    def test_non_image_enclosure_is_ignored(self):
        entry = make_entry(
            title="Podcast",
            link="",
            links=[{"rel": "enclosure", "type": "audio/mpeg", "href": "https://cdn.example.com/a.mp3"}],
            published_parsed=time.strptime("2024-01-02", "%Y-%m-%d"),
        )

        assert self.processor.normalize_item(entry).image_url is None


class TestLocalizedDateFeedProcessorUnit:
    """Unit tests for the localized date fallback."""

    def setup_method(self):
        self.processor = LocalizedDateFeedProcessor(
            "SVTV", "https://svtv.org/feed/rss/", date_tokens=RUSSIAN_DATE_TOKENS
        )

    def test_translate_russian_tokens(self):
        translated = translate_date_tokens("Пн, 01 Янв 2024 10:00:00 +0300", RUSSIAN_DATE_TOKENS)

        assert translated == "Mon, 01 Jan 2024 10:00:00 +0300"

    def test_russian_pubdate_is_parsed(self):
        entry = make_entry(
            title="Новость",
            link="https://svtv.org/news/1",
            published="Вт, 02 Янв 2024 15:30:00 +0300",
            published_parsed=None,
        )

        item = self.processor.normalize_item(entry)

        assert item is not None
        assert item.published_on == datetime(2024, 1, 2, 12, 30, tzinfo=UTC)
        assert item.source_name == "SVTV"

    @pytest.mark.parametrize(
        "raw, month",
        [("Пт, 10 Май 2024 08:00:00 +0000", 5), ("Сб, 07 Дек 2024 08:00:00 +0000", 12)],
    )
    def test_month_table(self, raw, month):
        entry = make_entry(title="t", link="", published=raw)

        assert self.processor.normalize_item(entry).published_on.month == month

    def test_generic_processor_cannot_read_russian_dates(self):
        generic = FeedProcessor("Other", "https://svtv.org/feed/rss/")
        entry = make_entry(title="t", link="", published="Вт, 02 Янв 2024 15:30:00 +0300")

        assert generic.normalize_item(entry) is None


class TestFetcherFactoryUnit:
    """create_fetcher picks the localized variant by source name."""

    def test_svtv_gets_localized_fetcher(self):
        fetcher = create_fetcher("SVTV", "https://svtv.org/feed/rss/", timeout=5)

        assert isinstance(fetcher, LocalizedDateFeedProcessor)
        assert fetcher.timeout == 5

    def test_other_sources_get_generic_fetcher(self):
        fetcher = create_fetcher("Meduza", "https://meduza.io/rss/all")

        assert type(fetcher) is FeedProcessor


class TestHelpersUnit:
    """Unit tests for module-level helpers."""

    def test_html_cleaning_specific_cases(self):
        test_cases = [
            ("<p>Simple paragraph</p>", "Simple paragraph"),
            ("<div><h1>Title</h1><p>Content</p></div>", "Title Content"),
            ("<script>alert('xss')</script><p>Safe content</p>", "Safe content"),
            ("<style>body{color:red}</style><p>Styled content</p>", "Styled content"),
            ("Plain text without HTML", "Plain text without HTML"),
            ("<p>Multiple  \n\n  spaces   and\tlines</p>", "Multiple spaces and lines"),
        ]

        for html_input, expected_output in test_cases:
            assert clean_html_content(html_input) == expected_output, html_input

    def test_empty_and_none_content_handling(self):
        assert clean_html_content("") == ""
        assert clean_html_content(None) == ""
        assert clean_html_content("   ") == ""
        assert clean_html_content("<div></div>") == ""

    def test_cutoff_since(self):
        now = datetime(2024, 1, 2, 12, 0, tzinfo=UTC)

        assert cutoff_since(24, now) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
