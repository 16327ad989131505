from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Callable, Optional
from api.services.targets import TargetNotFoundError
from db.models import UptimeCheck
from db.models.timestamps import utcnow
from db.repositories.alert_repository import AlertRepository
from db.repositories.website_repository import WebsiteRepository

PERIODS = [(24, "24h"), (24 * 7, "7d"), (24 * 30, "30d"), (24 * 365, "365d")]


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.0f}s"
    if seconds < 3600:
        return f"{seconds / 60:.0f}m"
    if seconds < 86400:
        return f"{seconds / 3600:.0f}h"
    return f"{seconds / 86400:.0f}d"


@dataclass
class Incident:
    website_id: int
    started_at: datetime
    resolved_at: Optional[datetime]
    duration_seconds: float

    @property
    def resolved(self) -> bool:
        return self.resolved_at is not None


@dataclass
class UptimeStats:
    website_id: int
    period: str
    percentage: float
    up_checks: int
    down_checks: int
    total_checks: int
    incident_count: int
    downtime: str


def find_incidents(website_id: int, checks: list[UptimeCheck], now: datetime) -> list[Incident]:
    """Down periods in ``checks`` (oldest first), newest incident first.

    An incident opens on the first down check and resolves on the next up check;
    one still open at the end is measured up to ``now``.
    """
    incidents = []
    started_at = None
    for check in checks:
        if not check.is_up and started_at is None:
            started_at = check.checked_at
        elif check.is_up and started_at is not None:
            duration = (check.checked_at - started_at).total_seconds()
            incidents.append(Incident(website_id, started_at, check.checked_at, duration))
            started_at = None
    if started_at is not None:
        incidents.append(Incident(website_id, started_at, None, (now - started_at).total_seconds()))
    incidents.reverse()
    return incidents


class StatsService:
    def __init__(
        self,
        website_repo: WebsiteRepository,
        alert_repo: AlertRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.website_repo = website_repo
        self.alert_repo = alert_repo
        self.clock = clock

    def uptime_percentage(self, website_id: int, hours: int) -> tuple[float, int, int]:
        since = self.clock() - timedelta(hours=hours)
        checks = self.website_repo.list_checks_since(website_id, since)
        return self._percentage(checks)

    def incidents(self, website_id: int, limit: int = 10, hours: int = 24 * 365) -> list[Incident]:
        now = self.clock()
        checks = self.website_repo.list_checks_since(website_id, now - timedelta(hours=hours))
        return find_incidents(website_id, checks, now)[:limit]

    def average_response_time(self, website_id: int, hours: int) -> float:
        since = self.clock() - timedelta(hours=hours)
        times = [c.response_time for c in self.website_repo.list_checks_since(website_id, since) if c.is_up]
        if not times:
            return 0.0
        return sum(times) / len(times)

    def uptime_history(self, website_id: int, limit: int = 50) -> list[UptimeCheck]:
        return self.website_repo.list_checks(website_id, limit=limit)

    def website_detail(self, website_id: int) -> dict:
        website = self.website_repo.get_by_id(website_id)
        if website is None:
            raise TargetNotFoundError(f"website {website_id} not found")

        now = self.clock()
        year_of_checks = self.website_repo.list_checks_since(website_id, now - timedelta(hours=24 * 365))
        all_incidents = find_incidents(website_id, year_of_checks, now)

        stats = []
        for hours, label in PERIODS:
            since = now - timedelta(hours=hours)
            window = [c for c in year_of_checks if c.checked_at >= since]
            percentage, up_checks, down_checks = self._percentage(window)
            in_period = [i for i in all_incidents if i.started_at >= since]
            downtime = sum(i.duration_seconds for i in in_period)
            stats.append(
                UptimeStats(
                    website_id=website_id,
                    period=label,
                    percentage=percentage,
                    up_checks=up_checks,
                    down_checks=down_checks,
                    total_checks=up_checks + down_checks,
                    incident_count=len(in_period),
                    downtime=format_duration(downtime),
                )
            )

        last = self.website_repo.get_last_check(website_id)
        return {
            "website": website,
            "last_status": last,
            "uptime_stats": [asdict(s) for s in stats],
            "incidents": [asdict(i) for i in all_incidents[:10]],
            "avg_response": self.average_response_time(website_id, 24 * 30),
            "total_checks": self.website_repo.count_checks(website_id),
            "recent_alerts": [
                {"alert_type": a.alert_type, "sent_at": a.sent_at}
                for a in self.alert_repo.list_for_website(website_id, limit=10)
            ],
        }

    @staticmethod
    def _percentage(checks: list[UptimeCheck]) -> tuple[float, int, int]:
        total = len(checks)
        if total == 0:
            # No checks means 100% uptime
            return 100.0, 0, 0
        up_checks = sum(1 for c in checks if c.is_up)
        return up_checks / total * 100, up_checks, total - up_checks
