"""
Store adapters the check engine talks to.

Each call opens its own short-lived session from the factory, so the store can
be shared by every worker thread. Only plain dataclasses leave this module.
"""
from datetime import timedelta
from typing import Callable, Optional
from sqlalchemy.orm import Session
from api.services.targets import (
    FeedOutcome,
    Observation,
    ParsedArticle,
    ParsedFeed,
    Target,
    TargetKind,
    TargetNotFoundError,
    CheckResult,
)
from db.models import Article, Feed, Website
from db.models.timestamps import to_naive_utc, utcnow
from db.models.uptime_check import STATUS_DOWN, STATUS_UP
from db.repositories.alert_repository import AlertRepository
from db.repositories.article_repository import ArticleRepository
from db.repositories.feed_repository import FeedRepository
from db.repositories.website_repository import WebsiteRepository

SessionFactory = Callable[[], Session]


def website_target(website: Website, last_polled=None) -> Target:
    return Target(
        kind=TargetKind.WEBSITE,
        id=website.id,
        address=website.url,
        interval=website.check_interval,
        name=website.name,
        enabled=website.is_active,
        last_polled=last_polled,
    )


def feed_target(feed: Feed) -> Target:
    return Target(
        kind=TargetKind.FEED,
        id=feed.id,
        address=feed.url,
        interval=feed.fetch_interval,
        name=feed.title,
        enabled=feed.enabled,
        last_polled=feed.last_fetched,
    )


class UptimeStore:
    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def list_active_targets(self) -> list[Target]:
        with self.session_factory() as db:
            rows = WebsiteRepository(db).list_active_with_last_check()
            return [website_target(website, last_checked) for website, last_checked in rows]

    def get_target(self, target_id: int) -> Target:
        with self.session_factory() as db:
            repo = WebsiteRepository(db)
            website = repo.get_by_id(target_id)
            if website is None:
                raise TargetNotFoundError(f"website {target_id} not found")
            last = repo.get_last_check(target_id)
            return website_target(website, last.checked_at if last else None)

    def get_last_observation(self, target_id: int) -> Optional[Observation]:
        with self.session_factory() as db:
            check = WebsiteRepository(db).get_last_check(target_id)
            if check is None:
                return None
            return Observation(
                target_id=check.website_id,
                is_up=check.is_up,
                status_code=check.status_code,
                latency_ms=check.response_time,
                error=check.error_message,
                observed_at=check.checked_at,
            )

    def append_observation(self, target_id: int, result: CheckResult) -> Observation:
        with self.session_factory() as db:
            check = WebsiteRepository(db).add_check(
                website_id=target_id,
                status=STATUS_UP if result.is_up else STATUS_DOWN,
                response_time=result.latency_ms,
                status_code=result.status_code,
                error_message=result.error,
            )
            return Observation(
                target_id=target_id,
                is_up=result.is_up,
                status_code=result.status_code,
                latency_ms=result.latency_ms,
                error=result.error,
                observed_at=check.checked_at,
            )

    def should_alert(self, target_id: int, kind: str, cooldown: timedelta) -> bool:
        with self.session_factory() as db:
            recent = AlertRepository(db).count_since(target_id, kind, utcnow() - cooldown)
            return recent == 0

    def record_alert_sent(self, target_id: int, kind: str) -> None:
        with self.session_factory() as db:
            AlertRepository(db).record(target_id, kind)

    def status_summary(self) -> list[dict]:
        with self.session_factory() as db:
            repo = WebsiteRepository(db)
            rows = []
            for website in repo.list_websites():
                last = repo.get_last_check(website.id)
                rows.append(
                    {
                        "name": website.name,
                        "url": website.url,
                        "status": last.status if last else "unknown",
                        "checked_at": last.checked_at.strftime("%Y-%m-%d %H:%M:%S") if last else "never",
                    }
                )
            return rows


class FeedStore:
    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def list_active_targets(self) -> list[Target]:
        with self.session_factory() as db:
            return [feed_target(feed) for feed in FeedRepository(db).list_feeds(enabled_only=True)]

    def get_target(self, target_id: int) -> Target:
        with self.session_factory() as db:
            feed = FeedRepository(db).get_by_id(target_id)
            if feed is None:
                raise TargetNotFoundError(f"feed {target_id} not found")
            return feed_target(feed)

    def get_last_observation(self, target_id: int) -> Optional[FeedOutcome]:
        with self.session_factory() as db:
            fetch = FeedRepository(db).get_last_fetch(target_id)
            if fetch is None:
                return None
            return FeedOutcome(
                success=fetch.success,
                articles_added=fetch.articles_added,
                latency_ms=fetch.response_time,
                status_code=fetch.status_code,
                error=fetch.error_message,
            )

    def append_observation(self, target_id: int, outcome: FeedOutcome) -> None:
        """Record a fetch; a successful one also stamps the feed's last_fetched."""
        now = utcnow()
        with self.session_factory() as db:
            repo = FeedRepository(db)
            repo.add_fetch(
                feed_id=target_id,
                success=outcome.success,
                articles_added=outcome.articles_added,
                response_time=outcome.latency_ms,
                status_code=outcome.status_code,
                error_message=outcome.error,
                fetched_at=now,
            )
            if outcome.success:
                repo.mark_fetched(target_id, now)

    def article_exists(self, target_id: int, guid: str) -> bool:
        with self.session_factory() as db:
            return ArticleRepository(db).exists_by_feed_and_guid(target_id, guid)

    def append_article(self, target_id: int, article: ParsedArticle) -> bool:
        """Insert the article; False when (feed, guid) was already stored."""
        with self.session_factory() as db:
            created = ArticleRepository(db).create(
                Article(
                    feed_id=target_id,
                    title=article.title,
                    link=article.link,
                    description=article.description,
                    content=article.content,
                    author=article.author,
                    guid=article.guid,
                    published_at=to_naive_utc(article.published_at),
                )
            )
            return created is not None

    def update_metadata(self, target_id: int, parsed: ParsedFeed) -> None:
        fields = {"title": parsed.title}
        if parsed.description:
            fields["description"] = parsed.description
        if parsed.link:
            fields["site_url"] = parsed.link
        with self.session_factory() as db:
            FeedRepository(db).update(target_id, fields)
