from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from db.base import Base
from db.models.timestamps import utcnow


class AlertHistory(Base):
    __tablename__ = "alert_history"
    id = Column(Integer, primary_key=True)
    website_id = Column(Integer, ForeignKey("uptime_websites.id"), nullable=False)
    alert_type = Column(String, nullable=False)  # "down" or "recovery"
    sent_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("ix_alert_history_lookup", "website_id", "alert_type", "sent_at"),)
