from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from db.base import Base
from db.models.timestamps import utcnow


class Feed(Base):
    __tablename__ = "rss_feeds"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, default="")
    url = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=False, default="")
    site_url = Column(String, nullable=False, default="")
    last_fetched = Column(DateTime, nullable=True)
    fetch_interval = Column(Integer, nullable=False, default=3600)  # seconds
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Feeds are hard-deleted; their articles and fetch history go with them
    articles = relationship("Article", back_populates="feed", cascade="all, delete-orphan")
    fetches = relationship("FeedFetch", cascade="all, delete-orphan")
