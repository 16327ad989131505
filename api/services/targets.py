"""
Shared types for the periodic check engine.

A ``Target`` is either a website or a feed; both flow through the same
scheduler and worker pool, and the per-kind processors decide what a check
means for them.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol


class TargetKind(str, Enum):
    WEBSITE = "website"
    FEED = "feed"


class TargetNotFoundError(Exception):
    pass


@dataclass(frozen=True)
class Target:
    kind: TargetKind
    id: int
    address: str
    interval: int  # seconds
    name: str = ""
    enabled: bool = True
    last_polled: Optional[datetime] = None  # naive UTC

    def describe(self) -> str:
        return f"{self.kind.value} {self.id} ({self.address})"


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one website probe."""

    is_up: bool
    status_code: int
    latency_ms: int
    error: Optional[str] = None


@dataclass(frozen=True)
class Observation:
    target_id: int
    is_up: bool
    status_code: int
    latency_ms: int
    error: Optional[str]
    observed_at: datetime

    @property
    def status(self) -> str:
        return "up" if self.is_up else "down"


@dataclass(frozen=True)
class FeedOutcome:
    """Outcome of one feed fetch; ``new_articles`` is the feed analogue of "up"."""

    success: bool
    articles_added: int = 0
    latency_ms: int = 0
    status_code: int = 0
    error: Optional[str] = None

    @property
    def new_articles(self) -> bool:
        return self.articles_added > 0


@dataclass
class ParsedArticle:
    title: str = ""
    link: str = ""
    description: str = ""
    content: str = ""
    author: str = ""
    guid: str = ""
    published_at: Optional[datetime] = None


@dataclass
class ParsedFeed:
    title: str = ""
    link: str = ""
    description: str = ""
    language: str = ""
    articles: list[ParsedArticle] = field(default_factory=list)


class TargetSource(Protocol):
    """The part of a store the scheduler itself needs."""

    def list_active_targets(self) -> list[Target]: ...

    def get_target(self, target_id: int) -> Target: ...
