from sqlalchemy import Column, Integer, String, Boolean, DateTime
from db.base import Base
from db.models.timestamps import utcnow


class Website(Base):
    __tablename__ = "uptime_websites"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    url = Column(String, nullable=False, unique=True)
    check_interval = Column(Integer, nullable=False, default=300)  # seconds
    is_active = Column(Boolean, nullable=False, default=True)  # soft-disable instead of delete
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
