from typing import Optional
from api.services.fetcher import FeedFetchError, FeedFetcher
from api.services.stores import FeedStore
from api.services.targets import FeedOutcome, Target
from db.models import Article, Feed
from db.repositories.article_repository import ArticleRepository
from db.repositories.feed_repository import FeedRepository
import logging
import threading

logger = logging.getLogger(__name__)


class FeedUpdater:
    """Feed binding of the check engine: fetch, discover metadata, ingest new articles."""

    def __init__(self, store: FeedStore, fetcher: FeedFetcher, max_articles_per_feed: int = 100):
        self.store = store
        self.fetcher = fetcher
        self.max_articles_per_feed = max_articles_per_feed

    def process(self, target: Target, cancel: Optional[threading.Event] = None) -> Optional[FeedOutcome]:
        if cancel is not None and cancel.is_set():
            return None

        logger.info(f"Updating feed {target.id} ({target.address})")
        try:
            fetched = self.fetcher.fetch(target.address)
        except FeedFetchError as e:
            logger.warning(f"Failed to fetch feed {target.id} ({target.address}): {e}")
            outcome = FeedOutcome(
                success=False, latency_ms=e.latency_ms, status_code=e.status_code, error=str(e)
            )
            self.store.append_observation(target.id, outcome)
            return outcome

        parsed = fetched.feed
        if parsed.title and not target.name:
            try:
                self.store.update_metadata(target.id, parsed)
            except Exception:
                logger.exception(f"Failed to update feed metadata for feed {target.id}")

        articles_added = 0
        for article in parsed.articles[: self.max_articles_per_feed]:
            if not article.guid:
                article.guid = article.link
            if not article.guid:
                logger.warning(f"Skipping article without guid or link in feed {target.id}")
                continue
            try:
                if self.store.article_exists(target.id, article.guid):
                    continue
                if self.store.append_article(target.id, article):
                    articles_added += 1
            except Exception:
                logger.exception(f"Failed to store article {article.guid!r} for feed {target.id}")

        outcome = FeedOutcome(
            success=True,
            articles_added=articles_added,
            latency_ms=fetched.latency_ms,
            status_code=fetched.status_code,
        )
        self.store.append_observation(target.id, outcome)
        logger.info(f"Feed update completed for feed {target.id}: {articles_added} articles added")
        return outcome


class FeedService:
    def __init__(self, feed_repo: FeedRepository, article_repo: ArticleRepository):
        self.feed_repo = feed_repo
        self.article_repo = article_repo

    def create_feed(
        self,
        url: str,
        title: str = "",
        description: str = "",
        site_url: str = "",
        fetch_interval: int = 3600,
    ) -> Feed:
        if self.feed_repo.get_by_url(url):
            raise ValueError("Feed already exists")
        feed = Feed(
            url=url,
            title=title,
            description=description,
            site_url=site_url,
            fetch_interval=fetch_interval,
        )
        return self.feed_repo.create(feed)

    def get_feed(self, feed_id: int) -> Feed | None:
        return self.feed_repo.get_by_id(feed_id)

    def list_feeds(self, enabled_only: bool = False) -> list[Feed]:
        return self.feed_repo.list_feeds(enabled_only=enabled_only)

    def update_feed(self, feed_id: int, fields: dict) -> Feed:
        return self.feed_repo.update(feed_id, fields)

    def delete_feed(self, feed_id: int) -> None:
        self.feed_repo.delete(feed_id)

    def list_articles(
        self,
        feed_id: int,
        limit: int = 50,
        offset: int = 0,
        is_read: Optional[bool] = None,
        is_starred: Optional[bool] = None,
    ) -> list[Article]:
        return self.article_repo.list_by_feed(
            feed_id, limit=limit, offset=offset, is_read=is_read, is_starred=is_starred
        )

    def mark_article_read(self, article_id: int) -> Article:
        return self.article_repo.mark_read(article_id)

    def toggle_article_star(self, article_id: int) -> Article:
        return self.article_repo.toggle_star(article_id)

    def feed_stats(self, feed_id: int) -> dict:
        """Article and fetch counters for one feed, plus the outcome of its latest fetch"""
        feed = self.feed_repo.get_by_id(feed_id)
        if not feed:
            raise ValueError("Feed not found")
        last_fetch = self.feed_repo.get_last_fetch(feed_id)
        return {
            "feed_id": feed_id,
            "total_articles": self.article_repo.count_by_feed(feed_id),
            "unread_articles": self.article_repo.count_by_feed(feed_id, is_read=False),
            "starred_articles": self.article_repo.count_by_feed(feed_id, is_starred=True),
            "fetch_count": self.feed_repo.count_fetches(feed_id),
            "last_fetch_success": last_fetch.success if last_fetch else None,
            "last_fetch_error": last_fetch.error_message if last_fetch else None,
            "last_fetched": feed.last_fetched,
        }
