from fastapi import APIRouter, Depends, HTTPException, Request, status
from api.dependencies import get_stats_service, get_uptime_scheduler, get_website_service
from api.limiter import limiter
from api.models import (
    CheckOutcomeResponse,
    CycleResponse,
    UptimeCheckResponse,
    WebsiteCreate,
    WebsiteResponse,
    WebsiteUpdate,
)
from api.services.scheduler import CycleScheduler
from api.services.stats_service import StatsService
from api.services.targets import TargetNotFoundError
from api.services.uptime_service import WebsiteService
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_or_404(website_service: WebsiteService, website_id: int):
    website = website_service.get_website(website_id)
    if not website:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Website not found")
    return website


@router.get("/websites", response_model=list[WebsiteResponse])
def list_websites(
    include_inactive: bool = False,
    website_service: WebsiteService = Depends(get_website_service),
):
    return website_service.list_websites(include_inactive=include_inactive)


@router.post("/websites", response_model=WebsiteResponse, status_code=status.HTTP_201_CREATED)
def create_website(
    website: WebsiteCreate,
    website_service: WebsiteService = Depends(get_website_service),
):
    try:
        # Convert Pydantic HttpUrl to string for database storage
        return website_service.create_website(website.name, str(website.url), website.check_interval)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/websites/check", response_model=CycleResponse)
@limiter.limit("10/minute")
def check_all_websites(
    request: Request,
    scheduler: CycleScheduler = Depends(get_uptime_scheduler),
):
    report = scheduler.refresh_all(force=True)
    return CycleResponse(total=report.total, due=report.due, processed=report.processed)


@router.get("/websites/{website_id}", response_model=WebsiteResponse)
def get_website(
    website_id: int,
    website_service: WebsiteService = Depends(get_website_service),
):
    return _get_or_404(website_service, website_id)


@router.put("/websites/{website_id}", response_model=WebsiteResponse)
def update_website(
    website_id: int,
    website: WebsiteUpdate,
    website_service: WebsiteService = Depends(get_website_service),
):
    _get_or_404(website_service, website_id)
    return website_service.update_website(
        website_id,
        name=website.name,
        url=str(website.url) if website.url else None,
        check_interval=website.check_interval,
        is_active=website.is_active,
    )


@router.delete("/websites/{website_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_website(
    website_id: int,
    website_service: WebsiteService = Depends(get_website_service),
):
    _get_or_404(website_service, website_id)
    website_service.deactivate_website(website_id)


@router.post("/websites/{website_id}/check", response_model=CheckOutcomeResponse)
@limiter.limit("30/minute")
def check_website(
    request: Request,
    website_id: int,
    scheduler: CycleScheduler = Depends(get_uptime_scheduler),
):
    try:
        observation = scheduler.refresh_one(website_id)
    except TargetNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Website not found")
    except Exception:
        # Cause is already logged with the website identity
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Website check failed")
    if observation is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Checks are shutting down")
    return CheckOutcomeResponse(
        target_id=observation.target_id,
        status=observation.status,
        status_code=observation.status_code,
        latency_ms=observation.latency_ms,
        error=observation.error,
        observed_at=observation.observed_at,
    )


@router.get("/websites/{website_id}/history", response_model=list[UptimeCheckResponse])
def website_history(
    website_id: int,
    limit: int = 50,
    website_service: WebsiteService = Depends(get_website_service),
    stats_service: StatsService = Depends(get_stats_service),
):
    _get_or_404(website_service, website_id)
    return stats_service.uptime_history(website_id, limit=max(1, min(limit, 500)))


@router.get("/websites/{website_id}/detail")
def website_detail(
    website_id: int,
    stats_service: StatsService = Depends(get_stats_service),
):
    try:
        detail = stats_service.website_detail(website_id)
    except TargetNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Website not found")
    last = detail["last_status"]
    return {
        "website": WebsiteResponse.model_validate(detail["website"]).model_dump(mode="json"),
        "last_status": UptimeCheckResponse.model_validate(last).model_dump(mode="json") if last else None,
        "uptime_stats": detail["uptime_stats"],
        "incidents": detail["incidents"],
        "avg_response": detail["avg_response"],
        "total_checks": detail["total_checks"],
        "recent_alerts": detail["recent_alerts"],
    }
