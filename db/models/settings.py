from sqlalchemy import Column, Integer, String, Boolean, DateTime
from db.base import Base
from db.models.timestamps import utcnow


class Settings(Base):
    """Key/value runtime settings (SMTP credentials etc.); environment variables win over rows."""

    __tablename__ = "settings"
    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, nullable=False, index=True)
    value = Column(String, nullable=True)
    is_secret = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
