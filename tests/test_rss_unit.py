"""Unit tests for the RSS feed processor."""

from unittest.mock import Mock, patch

import pytest
import requests

from rss_mailer.models import FeedItem
from rss_mailer.rss import FeedFetchError, FeedProcessor

RSS_DOCUMENT = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example</title>
    <link>https://example.com/</link>
    <description>Example feed</description>
    <item>
      <title>First post</title>
      <link>https://example.com/first</link>
      <guid>https://example.com/?p=1</guid>
      <description>&lt;p&gt;Hello &lt;b&gt;world&lt;/b&gt;&lt;/p&gt;</description>
    </item>
    <item>
      <title>Second post</title>
      <link>https://example.com/second</link>
    </item>
  </channel>
</rss>
"""


def make_entry(**fields):
    entry = Mock()
    for name in ("title", "link", "id", "guid", "summary", "description", "content"):
        setattr(entry, name, fields.get(name))
    entry.links = fields.get("links", [])
    return entry


class TestFeedProcessorUnit:
    """Unit tests for FeedProcessor."""

    def setup_method(self):
        self.processor = FeedProcessor()

    def test_rss_2_0_item_uses_guid_as_identity(self):
        entry = make_entry(
            title="AWS Announces New Service",
            link="https://example.com/new-service/",
            guid="https://example.com/?p=42",
            summary="<p>A new service for developers.</p>",
        )

        result = self.processor.normalize_item(entry, "https://example.com/feed/")

        assert isinstance(result, FeedItem)
        assert result.identity == "https://example.com/?p=42"
        assert result.link == "https://example.com/new-service/"
        assert result.summary == "A new service for developers."
        assert result.feed_url == "https://example.com/feed/"

    def test_atom_item_uses_id_and_content(self):
        content = Mock()
        content.get.return_value = "<div><h2>Update</h2><p>New guidelines.</p></div>"
        entry = make_entry(
            title="Security Update",
            link="https://example.com/security-update",
            id="tag:example.com,2024:/security-update",
            content=[content],
        )

        result = self.processor.normalize_item(entry, "https://example.com/atom")

        assert result.identity == "tag:example.com,2024:/security-update"
        assert result.summary == "Update New guidelines."

    def test_identity_falls_back_to_link(self):
        entry = make_entry(title="Minimal", link="https://example.com/minimal")

        result = self.processor.normalize_item(entry, "https://example.com/feed/")

        assert result.identity == "https://example.com/minimal"
        assert result.link == "https://example.com/minimal"
        assert result.summary is None

    def test_link_taken_from_links_list(self):
        entry = make_entry(title="Links only", links=[{"href": "https://example.com/x"}])

        result = self.processor.normalize_item(entry, "https://example.com/feed/")

        assert result.identity == "https://example.com/x"
        assert result.link == "https://example.com/x"

    def test_link_falls_back_to_identity(self):
        entry = make_entry(title="Id only", id="https://example.com/permalink")

        result = self.processor.normalize_item(entry, "https://example.com/feed/")

        assert result.link == "https://example.com/permalink"

    def test_entry_without_any_link_has_empty_identity(self):
        entry = make_entry(title=None)

        result = self.processor.normalize_item(entry, "https://example.com/feed/")

        assert result.identity == ""
        assert result.title == "No Title"

    def test_html_cleaning(self):
        cases = [
            ("<p>Simple paragraph</p>", "Simple paragraph"),
            ("<script>alert('xss')</script><p>Safe content</p>", "Safe content"),
            ("<style>body{color:red}</style><p>Styled</p>", "Styled"),
            ("Plain text  without\tHTML", "Plain text without HTML"),
            ("", ""),
            (None, ""),
            ("<p><br/></p>", ""),
        ]
        for html_input, expected in cases:
            assert self.processor.clean_html_content(html_input) == expected

    def test_fetch_parses_feed_in_order(self):
        response = Mock(status_code=200, content=RSS_DOCUMENT)
        with patch.object(self.processor.session, "get", return_value=response):
            items = self.processor.fetch("https://example.com/feed")

        assert [i.identity for i in items] == [
            "https://example.com/?p=1",
            "https://example.com/second",
        ]
        assert items[0].title == "First post"
        assert items[0].summary == "Hello world"
        assert items[0].link == "https://example.com/first"

    def test_fetch_rejects_non_http_scheme(self):
        with pytest.raises(FeedFetchError, match="HTTP or HTTPS"):
            self.processor.fetch("ftp://example.com/feed")

    def test_fetch_wraps_request_errors(self):
        with patch.object(
            self.processor.session,
            "get",
            side_effect=requests.ConnectionError("connection refused"),
        ):
            with pytest.raises(FeedFetchError, match="connection refused"):
                self.processor.fetch("https://example.com/feed")

    def test_fetch_wraps_http_errors(self):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        with patch.object(self.processor.session, "get", return_value=response):
            with pytest.raises(FeedFetchError, match="404"):
                self.processor.fetch("https://example.com/feed")

    def test_fetch_rejects_unparseable_content(self):
        response = Mock(status_code=200, content=b"<html><body>not a feed")
        with patch.object(self.processor.session, "get", return_value=response):
            with pytest.raises(FeedFetchError):
                self.processor.fetch("https://example.com/feed")
