"""
Tests for feed fetching and parsing
"""
import pytest
import requests
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from api.services.fetcher import FeedFetchError, FeedFetcher, FeedParseError, parse_date, parse_feed

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example Blog</title>
    <link>https://blog.example.com/</link>
    <description>Posts about examples</description>
    <language>en</language>
    <item>
      <title>First post</title>
      <link>https://blog.example.com/first</link>
      <description>Hello</description>
      <guid>post-1</guid>
      <pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Second post</title>
      <link>https://blog.example.com/second</link>
      <description>Again</description>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Atom</title>
  <subtitle>Atom entries</subtitle>
  <link rel="self" href="https://atom.example.com/feed.xml"/>
  <link rel="alternate" href="https://atom.example.com/"/>
  <id>urn:example:feed</id>
  <updated>2024-01-02T08:00:00Z</updated>
  <entry>
    <title>Entry one</title>
    <link rel="related" href="https://elsewhere.example.com/"/>
    <link rel="alternate" href="https://atom.example.com/one"/>
    <id>urn:example:entry:1</id>
    <updated>2024-01-02T08:00:00Z</updated>
    <summary>Summary one</summary>
  </entry>
</feed>
"""

LAX_RSS_FEED = b"""<?xml version="1.0"?>
<rss>
  <channel>
    <title>No Version</title>
    <item><title>Only item</title><link>https://lax.example.com/1</link></item>
  </channel>
</rss>
"""


class TestParseFeed:
    """Test format detection and normalisation"""

    def test_rss(self):
        feed = parse_feed(RSS_FEED)

        assert feed.title == "Example Blog"
        assert feed.description == "Posts about examples"
        assert feed.language == "en"
        assert len(feed.articles) == 2

        first = feed.articles[0]
        assert first.guid == "post-1"
        assert first.link == "https://blog.example.com/first"
        assert first.published_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)

        # No guid and no date: identity is decided later, date stays empty
        second = feed.articles[1]
        assert second.guid == ""
        assert second.published_at is None

    def test_atom_prefers_alternate_link(self):
        feed = parse_feed(ATOM_FEED)

        assert feed.title == "Example Atom"
        assert feed.description == "Atom entries"
        assert feed.link == "https://atom.example.com/"
        entry = feed.articles[0]
        assert entry.link == "https://atom.example.com/one"
        assert entry.guid == "urn:example:entry:1"
        assert entry.description == "Summary one"
        assert entry.published_at == datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc)

    def test_rss_without_version(self):
        feed = parse_feed(LAX_RSS_FEED)
        assert feed.title == "No Version"
        assert feed.articles[0].link == "https://lax.example.com/1"

    def test_not_a_feed(self):
        with pytest.raises(FeedParseError):
            parse_feed(b"<html><body>Not a feed</body></html>")


class TestParseDate:
    """Test the publication date formats"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Mon, 01 Jan 2024 10:00:00 GMT", datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)),
            ("Mon, 01 Jan 2024 12:00:00 +0200", datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)),
            ("2024-01-01T10:00:00Z", datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)),
            ("2024-01-01 10:00:00", datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)),
        ],
    )
    def test_known_formats(self, value, expected):
        assert parse_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "next tuesday"])
    def test_unknown_is_none(self, value):
        assert parse_date(value) is None

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Mon, 02 Jan 2006 15:04:05 EST", datetime(2006, 1, 2, 20, 4, 5, tzinfo=timezone.utc)),
            ("Tue, 04 Jun 2024 09:30:00 PDT", datetime(2024, 6, 4, 16, 30, tzinfo=timezone.utc)),
        ],
    )
    def test_zone_abbreviations_in_feeds(self, value, expected):
        content = RSS_FEED.replace(b"Mon, 01 Jan 2024 10:00:00 GMT", value.encode())
        assert parse_feed(content).articles[0].published_at == expected

    def test_falls_back_to_normalised_time(self):
        normalised = time.struct_time((2006, 1, 2, 20, 4, 5, 0, 2, 0))
        result = parse_date("Mon, 02 Jan 2006 15:04:05 EST", normalised)
        assert result == datetime(2006, 1, 2, 20, 4, 5, tzinfo=timezone.utc)

    def test_normalised_time_without_text(self):
        normalised = time.struct_time((2024, 1, 2, 8, 0, 0, 1, 2, 0))
        assert parse_date(None, normalised) == datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc)


def fake_response(status_code, content=b""):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    return response


class TestFeedFetcher:
    """Test fetching over HTTP"""

    @patch("api.services.fetcher.requests.get")
    def test_fetch_success(self, mock_get):
        mock_get.return_value = fake_response(200, RSS_FEED)

        fetched = FeedFetcher(user_agent="The Ark RSS Reader/1.0", timeout=30).fetch("https://blog.example.com/rss")

        assert fetched.status_code == 200
        assert fetched.feed.title == "Example Blog"
        headers = mock_get.call_args.kwargs["headers"]
        assert headers["User-Agent"] == "The Ark RSS Reader/1.0"
        assert "application/rss+xml" in headers["Accept"]
        assert mock_get.call_args.kwargs["timeout"] == 30

    @patch("api.services.fetcher.requests.get")
    def test_non_200(self, mock_get):
        mock_get.return_value = fake_response(404)

        with pytest.raises(FeedFetchError) as exc_info:
            FeedFetcher(user_agent="ua").fetch("https://blog.example.com/missing")

        assert exc_info.value.status_code == 404
        assert "404" in str(exc_info.value)

    @patch("api.services.fetcher.requests.get")
    def test_network_error(self, mock_get):
        mock_get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(FeedFetchError) as exc_info:
            FeedFetcher(user_agent="ua").fetch("https://slow.example.com/rss")

        assert exc_info.value.status_code == 0

    @patch("api.services.fetcher.requests.get")
    def test_unparseable_body(self, mock_get):
        mock_get.return_value = fake_response(200, b"<html>nope</html>")

        with pytest.raises(FeedParseError) as exc_info:
            FeedFetcher(user_agent="ua").fetch("https://blog.example.com/")

        assert exc_info.value.status_code == 200
