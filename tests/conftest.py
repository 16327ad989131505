"""
Shared test configuration and fixtures
"""
import pytest
import os
from datetime import datetime
from unittest.mock import Mock
from fastapi.testclient import TestClient

# Set test environment before importing app
os.environ["ARK_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ARK_SKIP_SCHEDULER"] = "true"  # Skip scheduler during tests
os.environ["ARK_RATE_LIMIT_ENABLED"] = "false"

from main import app
from db.base import Base
from db.engine import build_engine, engine, SessionLocal
from sqlalchemy.orm import sessionmaker
from api.services.targets import Observation, Target, TargetKind


@pytest.fixture(scope="function")
def test_db():
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session(test_db):
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture
def session_factory(test_db):
    return SessionLocal


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file database, for tests where worker threads write at the same time"""
    file_engine = build_engine(f"sqlite:///{tmp_path}/ark.db")
    Base.metadata.create_all(bind=file_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    file_engine.dispose()


@pytest.fixture
def client(test_db):
    """Test client running the real lifespan with the schedulers left stopped"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def mock_scheduler(client):
    """Swap the uptime and feed schedulers on app.state for mocks"""
    uptime, feeds = Mock(), Mock()
    original = app.state.uptime_scheduler, app.state.feed_scheduler
    app.state.uptime_scheduler, app.state.feed_scheduler = uptime, feeds
    yield uptime, feeds
    app.state.uptime_scheduler, app.state.feed_scheduler = original


def make_target(id=1, address="https://example.com", interval=300, last_polled=None, name="Example", kind=TargetKind.WEBSITE):
    return Target(kind=kind, id=id, address=address, interval=interval, name=name, last_polled=last_polled)


def make_observation(is_up, target_id=1, status_code=None, error=None):
    return Observation(
        target_id=target_id,
        is_up=is_up,
        status_code=status_code if status_code is not None else (200 if is_up else 503),
        latency_ms=42,
        error=error,
        observed_at=datetime(2024, 1, 1, 12, 0, 0),
    )
