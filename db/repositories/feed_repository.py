from sqlalchemy.orm import Session
from db.models import Feed, FeedFetch
from datetime import datetime
from typing import Optional


class FeedRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, feed: Feed) -> Feed:
        self.db.add(feed)
        self.db.commit()
        self.db.refresh(feed)
        return feed

    def get_by_id(self, feed_id: int) -> Feed | None:
        return self.db.query(Feed).filter(Feed.id == feed_id).first()

    def get_by_url(self, url: str) -> Feed | None:
        return self.db.query(Feed).filter(Feed.url == url).first()

    def list_feeds(self, enabled_only: bool = False) -> list[Feed]:
        query = self.db.query(Feed)
        if enabled_only:
            query = query.filter(Feed.enabled.is_(True))
        return query.order_by(Feed.title, Feed.id).all()

    def update(self, feed_id: int, fields: dict) -> Feed:
        feed = self.get_by_id(feed_id)
        if not feed:
            raise ValueError("Feed not found")
        for key, value in fields.items():
            if value is not None and hasattr(feed, key):
                setattr(feed, key, value)
        self.db.commit()
        self.db.refresh(feed)
        return feed

    def mark_fetched(self, feed_id: int, fetched_at: datetime) -> None:
        self.db.query(Feed).filter(Feed.id == feed_id).update({Feed.last_fetched: fetched_at})
        self.db.commit()

    def delete(self, feed_id: int) -> None:
        feed = self.get_by_id(feed_id)
        if not feed:
            raise ValueError("Feed not found")
        self.db.delete(feed)
        self.db.commit()

    def add_fetch(
        self,
        feed_id: int,
        success: bool,
        articles_added: int,
        response_time: int,
        status_code: int,
        error_message: Optional[str],
        fetched_at: datetime,
    ) -> FeedFetch:
        fetch = FeedFetch(
            feed_id=feed_id,
            success=success,
            articles_added=articles_added,
            response_time=response_time,
            status_code=status_code,
            error_message=error_message,
            fetched_at=fetched_at,
        )
        self.db.add(fetch)
        self.db.commit()
        self.db.refresh(fetch)
        return fetch

    def get_last_fetch(self, feed_id: int) -> FeedFetch | None:
        return (
            self.db.query(FeedFetch)
            .filter(FeedFetch.feed_id == feed_id)
            .order_by(FeedFetch.fetched_at.desc(), FeedFetch.id.desc())
            .first()
        )

    def count_fetches(self, feed_id: int) -> int:
        return self.db.query(FeedFetch).filter(FeedFetch.feed_id == feed_id).count()
