from datetime import timedelta
from enum import Enum
from typing import Optional, Protocol
from api.services.targets import Observation, Target
import logging

logger = logging.getLogger(__name__)


class AlertKind(str, Enum):
    DOWN = "down"
    RECOVERY = "recovery"


class AlertStore(Protocol):
    def should_alert(self, target_id: int, kind: str, cooldown: timedelta) -> bool: ...

    def record_alert_sent(self, target_id: int, kind: str) -> None: ...


class Notifier(Protocol):
    def send_alert(
        self, target: Target, kind: AlertKind, observation: Optional[Observation] = None
    ) -> tuple[bool, str]: ...


def alert_candidate(previous_is_up: Optional[bool], current_is_up: bool) -> Optional[AlertKind]:
    """
    Which alert, if any, a new observation offers.

    No previous observation never alerts, even when the first check is down.
    A site that stays down keeps offering DOWN (a reminder); the cooldown
    decides whether it is actually sent.
    """
    if previous_is_up is None:
        return None
    if not current_is_up:
        return AlertKind.DOWN
    if not previous_is_up:
        return AlertKind.RECOVERY
    return None


class AlertDeduplicator:
    def __init__(self, store: AlertStore, notifier: Notifier, cooldowns: dict[AlertKind, timedelta]):
        self.store = store
        self.notifier = notifier
        self.cooldowns = cooldowns

    def evaluate(
        self, target: Target, previous: Optional[Observation], current: Observation
    ) -> Optional[AlertKind]:
        """Offer the transition's alert candidate; returns the kind actually sent."""
        kind = alert_candidate(previous.is_up if previous else None, current.is_up)
        if kind is None:
            return None
        if previous is not None and previous.is_up != current.is_up:
            logger.info(f"Website {target.name or target.address} went {current.status}")
        return self.send(target, kind, current)

    def send(
        self,
        target: Target,
        kind: AlertKind,
        observation: Optional[Observation] = None,
        force: bool = False,
    ) -> Optional[AlertKind]:
        if not force:
            cooldown = self.cooldowns.get(kind, timedelta(0))
            try:
                allowed = self.store.should_alert(target.id, kind.value, cooldown)
            except Exception:
                logger.exception(f"Failed to check alert history for {target.describe()}")
                return None
            if not allowed:
                logger.info(f"Skipping {kind.value} alert for {target.describe()} - too recent")
                return None

        success, message = self.notifier.send_alert(target, kind, observation)
        if not success:
            # Not recorded, so the next qualifying observation tries again
            logger.error(f"Failed to send {kind.value} alert for {target.describe()}: {message}")
            return None

        try:
            self.store.record_alert_sent(target.id, kind.value)
        except Exception:
            logger.exception(f"Failed to record {kind.value} alert sent for {target.describe()}")

        logger.info(f"Sent {kind.value} alert for {target.describe()}")
        return kind
