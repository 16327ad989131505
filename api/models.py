from pydantic import BaseModel, ConfigDict, HttpUrl, conint, constr, field_validator
from datetime import datetime
from typing import Optional
import re


def _strip_tags(value: Optional[str]) -> Optional[str]:
    if value:
        # Remove any HTML/script tags
        return re.sub(r'<[^>]+>', '', value).strip()
    return value


class WebsiteCreate(BaseModel):
    name: constr(min_length=1, max_length=200, strip_whitespace=True)  # type: ignore
    url: HttpUrl
    check_interval: conint(ge=30, le=86400) = 300  # seconds  # type: ignore

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, name):
        return _strip_tags(name)


class WebsiteUpdate(BaseModel):
    name: Optional[constr(min_length=1, max_length=200, strip_whitespace=True)] = None  # type: ignore
    url: Optional[HttpUrl] = None
    check_interval: Optional[conint(ge=30, le=86400)] = None  # type: ignore
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, name):
        return _strip_tags(name)


class WebsiteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    url: str
    check_interval: int
    is_active: bool
    created_at: Optional[datetime]


class UptimeCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    website_id: int
    status: str
    response_time: int
    status_code: int
    error_message: Optional[str]
    checked_at: datetime


class CheckOutcomeResponse(BaseModel):
    target_id: int
    status: str
    status_code: int
    latency_ms: int
    error: Optional[str]
    observed_at: datetime


class CycleResponse(BaseModel):
    total: int
    due: int
    processed: int


class FeedCreate(BaseModel):
    url: HttpUrl
    title: Optional[constr(max_length=300, strip_whitespace=True)] = ""  # type: ignore
    description: Optional[str] = ""
    site_url: Optional[HttpUrl] = None
    fetch_interval: conint(ge=300, le=86400) = 3600  # 5 minutes to 24 hours  # type: ignore

    @field_validator("title")
    @classmethod
    def sanitize_title(cls, title):
        return _strip_tags(title) or ""


class FeedUpdate(BaseModel):
    title: Optional[constr(min_length=1, max_length=300, strip_whitespace=True)] = None  # type: ignore
    description: Optional[str] = None
    site_url: Optional[HttpUrl] = None
    fetch_interval: Optional[conint(ge=300, le=86400)] = None  # type: ignore
    enabled: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def sanitize_title(cls, title):
        return _strip_tags(title)


class FeedResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    url: str
    description: str
    site_url: str
    fetch_interval: int
    enabled: bool
    last_fetched: Optional[datetime]


class FeedRefreshResponse(BaseModel):
    feed_id: int
    success: bool
    articles_added: int
    error: Optional[str]


class ArticleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    feed_id: int
    title: str
    link: str
    description: str
    author: str
    guid: str
    published_at: Optional[datetime]
    fetched_at: datetime
    is_read: bool
    is_starred: bool
    read_at: Optional[datetime]


class FeedStatsResponse(BaseModel):
    feed_id: int
    total_articles: int
    unread_articles: int
    starred_articles: int
    fetch_count: int
    last_fetch_success: Optional[bool]
    last_fetch_error: Optional[str]
    last_fetched: Optional[datetime]
