"""
Feed fetching and normalisation.

``parse_feed`` turns raw RSS/Atom bytes into a ``ParsedFeed``. The format is
decided in a fixed order, first match wins:

1. RSS 2.0 (``<rss version="2.x">``)
2. Atom
3. any other RSS dialect, without the version requirement of step 1
4. otherwise ``FeedParseError``

Publication dates are tried against ``DATE_FORMATS`` in order, then against the
time feedparser already normalised (it knows zone names such as EST or PDT). A
date that matches neither leaves ``published_at`` empty instead of dropping the
item.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from api.services.targets import ParsedArticle, ParsedFeed
import feedparser
import logging
import requests
import time

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/rss+xml, application/atom+xml, application/xml, text/xml"

DATE_FORMATS = [
    "%a, %d %b %Y %H:%M:%S %Z",  # RFC 1123
    "%a, %d %b %Y %H:%M:%S %z",  # RFC 1123 with numeric zone
    "%d %b %y %H:%M %Z",  # RFC 822
    "%d %b %y %H:%M %z",  # RFC 822 with numeric zone
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
    "%d %b %Y %H:%M:%S %Z",
]


class FeedFetchError(Exception):
    def __init__(self, message: str, status_code: int = 0, latency_ms: int = 0):
        super().__init__(message)
        self.status_code = status_code
        self.latency_ms = latency_ms


class FeedParseError(FeedFetchError):
    pass


@dataclass
class FetchedFeed:
    feed: ParsedFeed
    status_code: int
    latency_ms: int


def parse_date(value: Optional[str], parsed: Optional[time.struct_time] = None) -> Optional[datetime]:
    """Parse a feed date into an aware UTC datetime, or None when no known format matches.

    ``parsed`` is feedparser's UTC ``*_parsed`` struct for the same field.
    """
    if not value:
        return _from_struct_time(parsed)
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            result = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)
    fallback = _from_struct_time(parsed)
    if fallback is None:
        logger.debug(f"Unparseable feed date: {value!r}")
    return fallback


def _from_struct_time(parsed: Optional[time.struct_time]) -> Optional[datetime]:
    if not parsed:
        return None
    try:
        return datetime(*parsed[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def _pick_link(item: Any) -> str:
    # Prefer the link with no rel or rel="alternate"
    for link in item.get("links", []) or []:
        if link.get("rel", "") in ("", "alternate") and link.get("href"):
            return link["href"]
    return item.get("link", "") or ""


def _first_content(entry: Any) -> str:
    contents = entry.get("content") or []
    for content in contents:
        value = content.get("value")
        if value:
            return value
    return ""


def _rss_article(entry: Any) -> ParsedArticle:
    return ParsedArticle(
        title=entry.get("title", "") or "",
        link=entry.get("link", "") or "",
        description=entry.get("description", "") or "",
        content=_first_content(entry),
        author=entry.get("author", "") or "",
        guid=entry.get("id", "") or "",
        published_at=parse_date(entry.get("published"), entry.get("published_parsed")),
    )


def _atom_article(entry: Any) -> ParsedArticle:
    return ParsedArticle(
        title=entry.get("title", "") or "",
        link=_pick_link(entry),
        description=entry.get("summary", "") or "",
        content=_first_content(entry),
        author=entry.get("author", "") or "",
        guid=entry.get("id", "") or "",
        published_at=_atom_date(entry),
    )


def _atom_date(entry: Any) -> Optional[datetime]:
    if entry.get("published"):
        return parse_date(entry.get("published"), entry.get("published_parsed"))
    return parse_date(entry.get("updated"), entry.get("updated_parsed"))


def _rss_feed(parsed: Any) -> ParsedFeed:
    channel = parsed.feed
    return ParsedFeed(
        title=channel.get("title", "") or "",
        link=channel.get("link", "") or "",
        description=channel.get("description", "") or "",
        language=channel.get("language", "") or "",
        articles=[_rss_article(entry) for entry in parsed.entries],
    )


def _atom_feed(parsed: Any) -> ParsedFeed:
    channel = parsed.feed
    return ParsedFeed(
        title=channel.get("title", "") or "",
        link=_pick_link(channel),
        description=channel.get("subtitle", "") or "",
        language=channel.get("language", "") or "",
        articles=[_atom_article(entry) for entry in parsed.entries],
    )


def parse_feed(content: bytes) -> ParsedFeed:
    parsed = feedparser.parse(content)
    version = parsed.get("version", "") or ""

    if version == "rss20":
        return _rss_feed(parsed)
    if version.startswith("atom"):
        return _atom_feed(parsed)
    if version.startswith("rss"):
        return _rss_feed(parsed)

    reason = parsed.get("bozo_exception")
    raise FeedParseError(f"unable to parse feed as RSS or Atom{f': {reason}' if reason else ''}")


class FeedFetcher:
    def __init__(self, user_agent: str, timeout: float = 30.0):
        self.user_agent = user_agent
        self.timeout = timeout

    def fetch(self, url: str) -> FetchedFeed:
        headers = {"User-Agent": self.user_agent, "Accept": ACCEPT_HEADER}
        start = time.monotonic()
        try:
            response = requests.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            raise FeedFetchError(f"failed to fetch feed: {e}", latency_ms=latency_ms) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        if response.status_code != 200:
            raise FeedFetchError(
                f"feed returned status {response.status_code}",
                status_code=response.status_code,
                latency_ms=latency_ms,
            )

        try:
            feed = parse_feed(response.content)
        except FeedParseError as e:
            e.status_code = response.status_code
            e.latency_ms = latency_ms
            raise

        logger.info(f"Fetched and parsed feed {url}: {len(feed.articles)} articles")
        return FetchedFeed(feed=feed, status_code=response.status_code, latency_ms=latency_ms)
