"""
Tests for uptime statistics and incidents
"""
import pytest
from datetime import datetime, timedelta
from api.services.stats_service import StatsService, find_incidents, format_duration
from api.services.targets import TargetNotFoundError
from db.models import UptimeCheck, Website
from db.repositories.alert_repository import AlertRepository
from db.repositories.website_repository import WebsiteRepository

NOW = datetime(2024, 6, 1, 12, 0, 0)


def check(status, minutes_ago, response_time=100):
    return UptimeCheck(
        website_id=1,
        status=status,
        response_time=response_time,
        status_code=200 if status == "up" else 500,
        checked_at=NOW - timedelta(minutes=minutes_ago),
    )


@pytest.mark.parametrize(
    "seconds,expected",
    [(0, "0s"), (59, "59s"), (60, "1m"), (3599, "60m"), (7200, "2h"), (172800, "2d")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


class TestFindIncidents:
    """Test grouping down checks into incidents"""

    def test_resolved_and_open(self):
        checks = [
            check("up", 60),
            check("down", 50),
            check("down", 45),
            check("up", 40),
            check("down", 10),
        ]

        incidents = find_incidents(1, checks, NOW)

        assert len(incidents) == 2
        open_incident, resolved = incidents
        assert open_incident.resolved is False
        assert open_incident.duration_seconds == 600
        assert resolved.resolved is True
        assert resolved.duration_seconds == 600

    def test_no_down_checks(self):
        assert find_incidents(1, [check("up", 5), check("up", 1)], NOW) == []


class TestStatsService:
    """Test statistics over stored checks"""

    @pytest.fixture
    def repo(self, session):
        return WebsiteRepository(session)

    @pytest.fixture
    def website(self, repo):
        return repo.create(Website(name="Example", url="https://example.com"))

    @pytest.fixture
    def stats(self, repo):
        return StatsService(repo, AlertRepository(repo.db), clock=lambda: NOW)

    def add(self, repo, website, status, minutes_ago, response_time=100):
        repo.add_check(
            website.id,
            status,
            response_time,
            200 if status == "up" else 500,
            checked_at=NOW - timedelta(minutes=minutes_ago),
        )

    def test_no_checks_is_full_uptime(self, stats, website):
        assert stats.uptime_percentage(website.id, 24) == (100.0, 0, 0)

    def test_percentage_window(self, stats, repo, website):
        self.add(repo, website, "up", 30)
        self.add(repo, website, "down", 20)
        self.add(repo, website, "up", 10)
        self.add(repo, website, "up", 5)
        # Outside the 24h window
        self.add(repo, website, "down", 60 * 48)

        percentage, up_checks, down_checks = stats.uptime_percentage(website.id, 24)

        assert percentage == 75.0
        assert (up_checks, down_checks) == (3, 1)

    def test_average_response_time_counts_up_checks(self, stats, repo, website):
        self.add(repo, website, "up", 30, response_time=100)
        self.add(repo, website, "up", 20, response_time=300)
        self.add(repo, website, "down", 10, response_time=10000)

        assert stats.average_response_time(website.id, 24) == 200.0

    def test_history_newest_first(self, stats, repo, website):
        self.add(repo, website, "up", 30)
        self.add(repo, website, "down", 20)

        history = stats.uptime_history(website.id, limit=1)

        assert len(history) == 1
        assert history[0].status == "down"

    def test_website_detail(self, stats, repo, website):
        self.add(repo, website, "up", 30)
        self.add(repo, website, "down", 20)
        self.add(repo, website, "up", 10)

        detail = stats.website_detail(website.id)

        assert detail["website"].id == website.id
        assert detail["last_status"].status == "up"
        assert [s["period"] for s in detail["uptime_stats"]] == ["24h", "7d", "30d", "365d"]
        day = detail["uptime_stats"][0]
        assert day["total_checks"] == 3
        assert day["incident_count"] == 1
        assert day["downtime"] == "10m"
        assert len(detail["incidents"]) == 1
        assert detail["avg_response"] == 100.0
        assert detail["total_checks"] == 3
        assert detail["recent_alerts"] == []

    def test_website_detail_recent_alerts(self, stats, repo, website):
        alerts = AlertRepository(repo.db)
        alerts.record(website.id, "down", sent_at=NOW - timedelta(minutes=20))
        alerts.record(website.id, "recovery", sent_at=NOW - timedelta(minutes=10))

        detail = stats.website_detail(website.id)

        assert detail["recent_alerts"] == [
            {"alert_type": "recovery", "sent_at": NOW - timedelta(minutes=10)},
            {"alert_type": "down", "sent_at": NOW - timedelta(minutes=20)},
        ]

    def test_website_detail_missing(self, stats):
        with pytest.raises(TargetNotFoundError):
            stats.website_detail(404)
