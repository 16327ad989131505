from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from db.base import Base
from db.models.timestamps import utcnow


class FeedFetch(Base):
    __tablename__ = "rss_feed_fetches"
    id = Column(Integer, primary_key=True)
    feed_id = Column(Integer, ForeignKey("rss_feeds.id", ondelete="CASCADE"), nullable=False, index=True)
    success = Column(Boolean, nullable=False, default=True)
    articles_added = Column(Integer, nullable=False, default=0)
    response_time = Column(Integer, nullable=False, default=0)  # milliseconds
    status_code = Column(Integer, nullable=False, default=0)
    error_message = Column(String, nullable=True)
    fetched_at = Column(DateTime, nullable=False, default=utcnow)
