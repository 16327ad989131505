from typing import Optional
from api.services.alerting import AlertDeduplicator
from api.services.checker import WebsiteChecker
from api.services.stores import UptimeStore
from api.services.targets import Observation, Target
from db.models import Website
from db.repositories.website_repository import WebsiteRepository
import logging
import threading

logger = logging.getLogger(__name__)


class UptimeMonitor:
    """Website binding of the check engine: probe, store, then offer alerts."""

    def __init__(self, store: UptimeStore, checker: WebsiteChecker, alerts: AlertDeduplicator):
        self.store = store
        self.checker = checker
        self.alerts = alerts

    def process(self, target: Target, cancel: Optional[threading.Event] = None) -> Optional[Observation]:
        if cancel is not None and cancel.is_set():
            return None

        result = self.checker.check(target.address)

        # Read the prior state before our own row becomes "the latest"
        previous = self.store.get_last_observation(target.id)
        observation = self.store.append_observation(target.id, result)
        logger.info(
            f"Checked {target.address}: {observation.status} "
            f"(status {result.status_code}, {result.latency_ms} ms)"
        )

        self.alerts.evaluate(target, previous, observation)
        return observation


class WebsiteService:
    def __init__(self, website_repo: WebsiteRepository):
        self.website_repo = website_repo

    def create_website(self, name: str, url: str, check_interval: int = 300) -> Website:
        existing = self.website_repo.get_by_url(url)
        if existing:
            if existing.is_active:
                raise ValueError("Website already monitored")
            # Re-adding a soft-disabled site brings it back with its history
            return self.website_repo.update(
                existing.id, {"name": name, "check_interval": check_interval, "is_active": True}
            )
        return self.website_repo.create(Website(name=name, url=url, check_interval=check_interval))

    def get_website(self, website_id: int) -> Website | None:
        return self.website_repo.get_by_id(website_id)

    def list_websites(self, include_inactive: bool = False) -> list[Website]:
        return self.website_repo.list_websites(include_inactive=include_inactive)

    def update_website(
        self,
        website_id: int,
        name: Optional[str] = None,
        url: Optional[str] = None,
        check_interval: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> Website:
        return self.website_repo.update(
            website_id,
            {"name": name, "url": url, "check_interval": check_interval, "is_active": is_active},
        )

    def deactivate_website(self, website_id: int) -> Website:
        return self.website_repo.deactivate(website_id)

    def seed_websites(self, seeds: list[tuple[str, str]], check_interval: int = 300) -> int:
        created = 0
        for name, url in seeds:
            if self.website_repo.get_by_url(url):
                continue
            self.website_repo.create(Website(name=name, url=url, check_interval=check_interval))
            logger.info(f"Seeded website {name} ({url})")
            created += 1
        return created
