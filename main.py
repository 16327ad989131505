from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import asynccontextmanager
from fastapi.responses import JSONResponse
from datetime import timedelta
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from api import router as api_router
from api.health import router as health_router
from api.limiter import limiter
from api.services.alerting import AlertDeduplicator, AlertKind
from api.services.checker import WebsiteChecker
from api.services.feed_service import FeedUpdater
from api.services.fetcher import FeedFetcher
from api.services.notifier import EmailNotifier, build_email_service
from api.services.scheduler import CycleScheduler
from api.services.stores import FeedStore, UptimeStore
from api.services.uptime_service import UptimeMonitor, WebsiteService
from config import ArkConfig, load_config
from db.engine import SessionLocal
from db.repositories.settings_repository import SettingsRepository
from db.repositories.website_repository import WebsiteRepository
import logging
import os


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    filename="log.txt",
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def seed_websites(config: ArkConfig, session_factory=SessionLocal) -> int:
    """Insert the configured seed websites that are not monitored yet"""
    if not config.uptime.seed_websites:
        return 0
    db = session_factory()
    try:
        created = WebsiteService(WebsiteRepository(db)).seed_websites(config.uptime.seed_websites)
        logger.info(f"Seeded {created} websites")
        return created
    except Exception as e:
        logger.error(f"Error seeding websites: {e}")
        return 0
    finally:
        db.close()


def build_uptime_scheduler(config: ArkConfig, session_factory=SessionLocal) -> CycleScheduler:
    store = UptimeStore(session_factory)

    db = session_factory()
    try:
        email_service = build_email_service(SettingsRepository(db))
    finally:
        db.close()

    notifier = EmailNotifier(email_service, config.uptime.alert_recipient, status_summary=store.status_summary)
    alerts = AlertDeduplicator(
        store,
        notifier,
        cooldowns={
            AlertKind.DOWN: timedelta(seconds=config.uptime.down_cooldown),
            AlertKind.RECOVERY: timedelta(seconds=config.uptime.recovery_cooldown),
        },
    )
    monitor = UptimeMonitor(store, WebsiteChecker(timeout=config.uptime.check_timeout), alerts)
    return CycleScheduler(
        name="uptime",
        source=store,
        process=monitor.process,
        interval_seconds=config.uptime.tick_interval,
        max_workers=config.uptime.max_workers,
        enforce_intervals=config.uptime.enforce_interval,
    )


def build_feed_scheduler(config: ArkConfig, session_factory=SessionLocal) -> CycleScheduler:
    store = FeedStore(session_factory)
    fetcher = FeedFetcher(user_agent=config.rss.user_agent, timeout=config.rss.fetch_timeout)
    updater = FeedUpdater(store, fetcher, max_articles_per_feed=config.rss.max_articles_per_feed)
    return CycleScheduler(
        name="rss",
        source=store,
        process=updater.process,
        interval_seconds=config.rss.fetch_interval,
        max_workers=config.rss.max_concurrent_fetches,
        enforce_intervals=True,
    )


def start_schedulers(app: FastAPI, config: ArkConfig) -> None:
    app.state.uptime_scheduler = build_uptime_scheduler(config)
    app.state.feed_scheduler = build_feed_scheduler(config)

    if config.skip_scheduler:
        logger.info("Scheduler disabled by ARK_SKIP_SCHEDULER")
        return
    if config.uptime.enabled:
        app.state.uptime_scheduler.start()
    else:
        logger.info("Uptime monitoring disabled")
    if config.rss.enabled:
        app.state.feed_scheduler.start()
    else:
        logger.info("RSS feed updates disabled")


def stop_schedulers(app: FastAPI) -> None:
    for name in ("uptime_scheduler", "feed_scheduler"):
        scheduler = getattr(app.state, name, None)
        if scheduler is not None:
            scheduler.stop(wait=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup code
    config = load_config()
    seed_websites(config)
    start_schedulers(app, config)
    yield
    # Shutdown code
    stop_schedulers(app)


app = FastAPI(title="The Ark", lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS Configuration - Allow same-origin by default, customize for production
allowed_origins = os.getenv("CORS_ORIGINS", "*").split(",")
if allowed_origins == ["*"]:
    logger.warning(
        "CORS is set to allow all origins (*). "
        "Set CORS_ORIGINS environment variable to restrict origins in production."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
    max_age=600,
)

# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response

app.include_router(health_router)
app.include_router(api_router, prefix="/api")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )
