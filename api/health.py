from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from api.dependencies import get_db
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def _scheduler_status(request: Request, name: str) -> str:
    scheduler = getattr(request.app.state, name, None)
    if scheduler is None:
        return "disabled"
    return "running" if scheduler.running else "stopped"


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring and load balancers.
    Reports database connectivity and the state of both check schedulers.
    """
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected",
            "scheduler": {
                "uptime": _scheduler_status(request, "uptime_scheduler"),
                "rss": _scheduler_status(request, "feed_scheduler"),
            },
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e)
        }
