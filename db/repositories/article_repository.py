from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from db.models import Article
from db.models.timestamps import utcnow
from typing import Optional


class ArticleRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, article_id: int) -> Article | None:
        return self.db.query(Article).filter(Article.id == article_id).first()

    def exists_by_feed_and_guid(self, feed_id: int, guid: str) -> bool:
        return (
            self.db.query(Article.id)
            .filter(Article.feed_id == feed_id, Article.guid == guid)
            .first()
            is not None
        )

    def create(self, article: Article) -> Article | None:
        """Insert an article; returns None when (feed_id, guid) already exists."""
        self.db.add(article)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return None
        self.db.refresh(article)
        return article

    def _feed_query(self, feed_id: int, is_read: Optional[bool] = None, is_starred: Optional[bool] = None):
        query = self.db.query(Article).filter(Article.feed_id == feed_id)
        if is_read is not None:
            query = query.filter(Article.is_read.is_(is_read))
        if is_starred is not None:
            query = query.filter(Article.is_starred.is_(is_starred))
        return query

    def list_by_feed(
        self,
        feed_id: int,
        limit: int = 50,
        offset: int = 0,
        is_read: Optional[bool] = None,
        is_starred: Optional[bool] = None,
    ) -> list[Article]:
        return (
            self._feed_query(feed_id, is_read=is_read, is_starred=is_starred)
            .order_by(Article.published_at.desc(), Article.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_by_feed(
        self, feed_id: int, is_read: Optional[bool] = None, is_starred: Optional[bool] = None
    ) -> int:
        return self._feed_query(feed_id, is_read=is_read, is_starred=is_starred).count()

    def mark_read(self, article_id: int) -> Article:
        article = self.get_by_id(article_id)
        if not article:
            raise ValueError("Article not found")
        if not article.is_read:
            article.is_read = True
            article.read_at = utcnow()
            self.db.commit()
            self.db.refresh(article)
        return article

    def toggle_star(self, article_id: int) -> Article:
        article = self.get_by_id(article_id)
        if not article:
            raise ValueError("Article not found")
        article.is_starred = not article.is_starred
        self.db.commit()
        self.db.refresh(article)
        return article
