# api/dependencies.py
from fastapi import Depends, Request, HTTPException, status
from db.engine import SessionLocal
from sqlalchemy.orm import Session
from db.repositories.alert_repository import AlertRepository
from db.repositories.website_repository import WebsiteRepository
from db.repositories.feed_repository import FeedRepository
from db.repositories.article_repository import ArticleRepository
from api.services.feed_service import FeedService
from api.services.scheduler import CycleScheduler
from api.services.stats_service import StatsService
from api.services.uptime_service import WebsiteService


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_website_service(db: Session = Depends(get_db)):
    return WebsiteService(WebsiteRepository(db))


def get_stats_service(db: Session = Depends(get_db)):
    return StatsService(WebsiteRepository(db), AlertRepository(db))


def get_feed_service(db: Session = Depends(get_db)):
    return FeedService(FeedRepository(db), ArticleRepository(db))


def _scheduler_from_state(request: Request, name: str) -> CycleScheduler:
    scheduler = getattr(request.app.state, name, None)
    if scheduler is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Checks are not available")
    return scheduler


def get_uptime_scheduler(request: Request) -> CycleScheduler:
    return _scheduler_from_state(request, "uptime_scheduler")


def get_feed_scheduler(request: Request) -> CycleScheduler:
    return _scheduler_from_state(request, "feed_scheduler")
