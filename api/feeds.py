from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import Optional
from api.dependencies import get_feed_scheduler, get_feed_service
from api.limiter import limiter
from api.models import (
    ArticleResponse,
    CycleResponse,
    FeedCreate,
    FeedRefreshResponse,
    FeedResponse,
    FeedStatsResponse,
    FeedUpdate,
)
from api.services.feed_service import FeedService
from api.services.scheduler import CycleScheduler
from api.services.targets import TargetNotFoundError

router = APIRouter()


def _get_or_404(feed_service: FeedService, feed_id: int):
    feed = feed_service.get_feed(feed_id)
    if not feed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feed not found")
    return feed


@router.get("/feeds", response_model=list[FeedResponse])
def list_feeds(
    enabled_only: bool = False,
    feed_service: FeedService = Depends(get_feed_service),
):
    return feed_service.list_feeds(enabled_only=enabled_only)


@router.post("/feeds", response_model=FeedResponse, status_code=status.HTTP_201_CREATED)
def create_feed(
    feed: FeedCreate,
    feed_service: FeedService = Depends(get_feed_service),
):
    try:
        return feed_service.create_feed(
            url=str(feed.url),
            title=feed.title or "",
            description=feed.description or "",
            site_url=str(feed.site_url) if feed.site_url else "",
            fetch_interval=feed.fetch_interval,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/feeds/refresh", response_model=CycleResponse)
@limiter.limit("10/minute")
def refresh_all_feeds(
    request: Request,
    scheduler: CycleScheduler = Depends(get_feed_scheduler),
):
    report = scheduler.refresh_all(force=True)
    return CycleResponse(total=report.total, due=report.due, processed=report.processed)


@router.get("/feeds/{feed_id}", response_model=FeedResponse)
def get_feed(
    feed_id: int,
    feed_service: FeedService = Depends(get_feed_service),
):
    return _get_or_404(feed_service, feed_id)


@router.put("/feeds/{feed_id}", response_model=FeedResponse)
def update_feed(
    feed_id: int,
    feed: FeedUpdate,
    feed_service: FeedService = Depends(get_feed_service),
):
    _get_or_404(feed_service, feed_id)
    fields = feed.model_dump(exclude_none=True)
    if "site_url" in fields:
        fields["site_url"] = str(feed.site_url)
    return feed_service.update_feed(feed_id, fields)


@router.delete("/feeds/{feed_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feed(
    feed_id: int,
    feed_service: FeedService = Depends(get_feed_service),
):
    _get_or_404(feed_service, feed_id)
    feed_service.delete_feed(feed_id)


@router.post("/feeds/{feed_id}/refresh", response_model=FeedRefreshResponse)
@limiter.limit("30/minute")
def refresh_feed(
    request: Request,
    feed_id: int,
    scheduler: CycleScheduler = Depends(get_feed_scheduler),
):
    try:
        outcome = scheduler.refresh_one(feed_id)
    except TargetNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feed not found")
    except Exception:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Feed refresh failed")
    if outcome is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Refresh is shutting down")
    return FeedRefreshResponse(
        feed_id=feed_id,
        success=outcome.success,
        articles_added=outcome.articles_added,
        error=outcome.error,
    )


@router.get("/feeds/{feed_id}/articles", response_model=list[ArticleResponse])
def list_articles(
    feed_id: int,
    limit: int = 50,
    offset: int = 0,
    is_read: Optional[bool] = None,
    is_starred: Optional[bool] = None,
    feed_service: FeedService = Depends(get_feed_service),
):
    _get_or_404(feed_service, feed_id)
    return feed_service.list_articles(
        feed_id,
        limit=max(1, min(limit, 200)),
        offset=max(0, offset),
        is_read=is_read,
        is_starred=is_starred,
    )


@router.get("/feeds/{feed_id}/stats", response_model=FeedStatsResponse)
def get_feed_stats(
    feed_id: int,
    feed_service: FeedService = Depends(get_feed_service),
):
    try:
        return feed_service.feed_stats(feed_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/articles/{article_id}/read", response_model=ArticleResponse)
def mark_article_read(
    article_id: int,
    feed_service: FeedService = Depends(get_feed_service),
):
    try:
        return feed_service.mark_article_read(article_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/articles/{article_id}/star", response_model=ArticleResponse)
def toggle_article_star(
    article_id: int,
    feed_service: FeedService = Depends(get_feed_service),
):
    try:
        return feed_service.toggle_article_star(article_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
