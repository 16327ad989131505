from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from db.base import Base
from db.models import Website, UptimeCheck, AlertHistory, Feed, Article, FeedFetch, Settings  # noqa: F401
from config import get_env_or_default
import logging
import os

logger = logging.getLogger(__name__)

# SQLite database setup
# Use environment variable or default to local file
DATABASE_URL = get_env_or_default("ARK_DATABASE_URL", "sqlite:///data/ark.db")


def build_engine(database_url: str):
    # Create data directory if it doesn't exist
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = database_url.replace("sqlite:///", "")
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    # Scheduler workers and request handlers share the engine across threads
    connect_args = {"check_same_thread": False}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every thread gets its own empty database
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create tables
Base.metadata.create_all(engine)
logger.info(f"Tables created: {list(Base.metadata.tables.keys())}")
