from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from db.base import Base
from db.models.timestamps import utcnow


class Article(Base):
    __tablename__ = "rss_articles"
    id = Column(Integer, primary_key=True)
    feed_id = Column(Integer, ForeignKey("rss_feeds.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False, default="")
    link = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    author = Column(String, nullable=False, default="")
    guid = Column(String, nullable=False)
    published_at = Column(DateTime, nullable=True)
    fetched_at = Column(DateTime, nullable=False, default=utcnow)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    is_starred = Column(Boolean, nullable=False, default=False)

    feed = relationship("Feed", back_populates="articles")

    __table_args__ = (UniqueConstraint("feed_id", "guid", name="uq_rss_articles_feed_guid"),)
