from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from db.base import Base
from db.models.timestamps import utcnow

STATUS_UP = "up"
STATUS_DOWN = "down"


class UptimeCheck(Base):
    __tablename__ = "uptime_checks"
    id = Column(Integer, primary_key=True)
    website_id = Column(Integer, ForeignKey("uptime_websites.id"), nullable=False)
    status = Column(String, nullable=False)  # "up" or "down"
    response_time = Column(Integer, nullable=False, default=0)  # milliseconds
    status_code = Column(Integer, nullable=False, default=0)
    error_message = Column(String, nullable=True)
    checked_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("ix_uptime_checks_website_checked", "website_id", "checked_at"),)

    @property
    def is_up(self) -> bool:
        return self.status == STATUS_UP
