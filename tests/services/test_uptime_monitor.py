"""
Tests for website checks end to end through the uptime store
"""
import pytest
import threading
from datetime import timedelta
from unittest.mock import Mock
from api.services.alerting import AlertDeduplicator, AlertKind
from api.services.scheduler import CycleScheduler
from api.services.stores import UptimeStore
from api.services.targets import CheckResult, TargetNotFoundError
from api.services.uptime_service import UptimeMonitor, WebsiteService
from db.models import AlertHistory, UptimeCheck, Website
from db.models.timestamps import utcnow
from db.repositories.alert_repository import AlertRepository
from db.repositories.website_repository import WebsiteRepository


class FakeChecker:
    """Returns queued results and records how many checks overlap"""

    def __init__(self, results=None):
        self.results = list(results or [])
        self.calls = 0
        self.active = 0
        self.peak = 0
        self.lock = threading.Lock()

    def check(self, url):
        with self.lock:
            self.calls += 1
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.results:
                return self.results.pop(0)
            return CheckResult(is_up=True, status_code=200, latency_ms=12)
        finally:
            with self.lock:
                self.active -= 1


def down(status_code=500):
    return CheckResult(is_up=False, status_code=status_code, latency_ms=30)


def up():
    return CheckResult(is_up=True, status_code=200, latency_ms=12)


@pytest.fixture
def website(session):
    return WebsiteRepository(session).create(Website(name="Example", url="http://example.test", check_interval=300))


@pytest.fixture
def notifier():
    notifier = Mock()
    notifier.send_alert.return_value = (True, "sent")
    return notifier


def build_monitor(session_factory, checker, notifier, down_cooldown=timedelta(hours=1)):
    store = UptimeStore(session_factory)
    alerts = AlertDeduplicator(
        store,
        notifier,
        {AlertKind.DOWN: down_cooldown, AlertKind.RECOVERY: timedelta(hours=24)},
    )
    return store, UptimeMonitor(store, checker, alerts)


class TestUptimeMonitor:
    """Test observation recording and alerting for websites"""

    def test_first_down_probe_records_without_alert(self, session_factory, session, website, notifier):
        store, monitor = build_monitor(session_factory, FakeChecker([down()]), notifier)

        observation = monitor.process(store.get_target(website.id))

        assert observation.is_up is False
        assert observation.status_code == 500
        notifier.send_alert.assert_not_called()
        assert session.query(UptimeCheck).count() == 1

    def test_down_reminder_after_cooldown(self, session_factory, session, website, notifier):
        # Zero cooldown: the reminder is always due
        store, monitor = build_monitor(
            session_factory, FakeChecker([down(), down()]), notifier, down_cooldown=timedelta(0)
        )
        target = store.get_target(website.id)

        monitor.process(target)
        notifier.send_alert.assert_not_called()

        monitor.process(target)

        notifier.send_alert.assert_called_once()
        assert notifier.send_alert.call_args.args[1] == AlertKind.DOWN
        alerts = session.query(AlertHistory).all()
        assert [a.alert_type for a in alerts] == ["down"]

    def test_down_reminder_inside_cooldown(self, session_factory, session, website, notifier):
        AlertRepository(session).record(website.id, "down", sent_at=utcnow() - timedelta(minutes=5))
        store, monitor = build_monitor(session_factory, FakeChecker([down(), down()]), notifier)
        target = store.get_target(website.id)

        monitor.process(target)
        monitor.process(target)

        notifier.send_alert.assert_not_called()

    def test_up_down_down_up(self, session_factory, session, website, notifier):
        store, monitor = build_monitor(session_factory, FakeChecker([up(), down(), down(), up()]), notifier)
        target = store.get_target(website.id)

        for _ in range(4):
            monitor.process(target)

        kinds = [c.args[1] for c in notifier.send_alert.call_args_list]
        assert kinds == [AlertKind.DOWN, AlertKind.RECOVERY]
        assert session.query(UptimeCheck).count() == 4

    def test_cancelled_before_check(self, session_factory, website, notifier):
        checker = FakeChecker()
        store, monitor = build_monitor(session_factory, checker, notifier)
        cancel = threading.Event()
        cancel.set()

        assert monitor.process(store.get_target(website.id), cancel) is None
        assert checker.calls == 0


class TestUptimeScheduling:
    """Test website checks driven by the cycle scheduler"""

    def test_concurrency_bound(self, file_session_factory, notifier):
        with file_session_factory() as db:
            repo = WebsiteRepository(db)
            for i in range(8):
                repo.create(Website(name=f"Site {i}", url=f"http://site{i}.example"))
        checker = FakeChecker()
        store, monitor = build_monitor(file_session_factory, checker, notifier)
        scheduler = CycleScheduler("uptime", store, monitor.process, 30, max_workers=3)

        report = scheduler.run_cycle()

        assert report.processed == 8
        assert checker.calls == 8
        assert checker.peak <= 3

    def test_interval_gate_uses_last_check(self, session_factory, session, website, notifier):
        checker = FakeChecker()
        store, monitor = build_monitor(session_factory, checker, notifier)
        scheduler = CycleScheduler("uptime", store, monitor.process, 30)

        scheduler.run_cycle()
        scheduler.run_cycle()

        # Checked once, then not due for another 300 seconds
        assert checker.calls == 1
        assert WebsiteRepository(session).count_checks(website.id) == 1

    def test_inactive_websites_are_skipped(self, session_factory, session, website, notifier):
        WebsiteRepository(session).deactivate(website.id)
        checker = FakeChecker()
        store, monitor = build_monitor(session_factory, checker, notifier)

        assert CycleScheduler("uptime", store, monitor.process, 30).run_cycle().total == 0
        assert checker.calls == 0


class TestUptimeStore:
    """Test the uptime store adapter"""

    def test_get_target_missing(self, session_factory):
        with pytest.raises(TargetNotFoundError):
            UptimeStore(session_factory).get_target(404)

    def test_target_carries_last_check(self, session_factory, session, website):
        check = WebsiteRepository(session).add_check(website.id, "up", 10, 200)
        target = UptimeStore(session_factory).get_target(website.id)
        assert target.last_polled == check.checked_at
        assert target.interval == 300

    def test_last_observation(self, session_factory, session, website):
        store = UptimeStore(session_factory)
        assert store.get_last_observation(website.id) is None

        store.append_observation(website.id, down(503))
        last = store.get_last_observation(website.id)
        assert last.is_up is False
        assert last.status_code == 503

    def test_should_alert_respects_cooldown(self, session_factory, session, website):
        store = UptimeStore(session_factory)
        assert store.should_alert(website.id, "down", timedelta(hours=1)) is True

        store.record_alert_sent(website.id, "down")

        assert store.should_alert(website.id, "down", timedelta(hours=1)) is False
        assert store.should_alert(website.id, "recovery", timedelta(hours=1)) is True

    def test_status_summary(self, session_factory, session, website):
        store = UptimeStore(session_factory)
        assert store.status_summary()[0]["status"] == "unknown"

        store.append_observation(website.id, up())

        row = store.status_summary()[0]
        assert row["name"] == "Example"
        assert row["status"] == "up"


class TestWebsiteService:
    """Test website administration"""

    @pytest.fixture
    def service(self, session):
        return WebsiteService(WebsiteRepository(session))

    def test_create_duplicate(self, service):
        service.create_website("Example", "https://example.com")
        with pytest.raises(ValueError, match="already monitored"):
            service.create_website("Again", "https://example.com")

    def test_create_reactivates_disabled(self, service):
        website = service.create_website("Example", "https://example.com")
        service.deactivate_website(website.id)

        again = service.create_website("Example 2", "https://example.com", check_interval=60)

        assert again.id == website.id
        assert again.is_active is True
        assert again.check_interval == 60

    def test_deactivate_keeps_row(self, service):
        website = service.create_website("Example", "https://example.com")
        service.deactivate_website(website.id)

        assert service.list_websites() == []
        assert len(service.list_websites(include_inactive=True)) == 1

    def test_update_ignores_missing_fields(self, service):
        website = service.create_website("Example", "https://example.com", check_interval=120)
        updated = service.update_website(website.id, name="Renamed")
        assert updated.name == "Renamed"
        assert updated.check_interval == 120

    def test_seed_skips_existing(self, service):
        service.create_website("Example", "https://example.com")
        created = service.seed_websites([("Example", "https://example.com"), ("Docs", "https://docs.example.com")])
        assert created == 1
        assert len(service.list_websites()) == 2
