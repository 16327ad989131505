from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.background import BackgroundScheduler
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from api.services.targets import Target, TargetSource
from api.services.worker_pool import WorkerPool
from db.models.timestamps import utcnow
import logging
import threading
import weakref

logger = logging.getLogger(__name__)

# A processor receives the target and the scheduler's stop event
Processor = Callable[[Target, threading.Event], Any]


class SchedulerStoppedError(Exception):
    pass


@dataclass(frozen=True)
class CycleReport:
    total: int = 0
    due: int = 0
    processed: int = 0


class CycleScheduler:
    """
    Drives periodic and on-demand check cycles over a store's active targets.

    One interval job runs on an APScheduler ``BackgroundScheduler``; it fires
    immediately on ``start`` and then every ``interval_seconds``. With
    ``max_instances=1`` a tick never overlaps the previous one. Each cycle
    re-reads the active targets, drops the ones that are not due yet (when
    ``enforce_intervals`` is set) and fans the rest out over a ``WorkerPool``.

    Manual refreshes share the per-target locks with the ticking cycle, so the
    same target is never processed twice at once.
    """

    def __init__(
        self,
        name: str,
        source: TargetSource,
        process: Processor,
        interval_seconds: int,
        max_workers: int = 5,
        enforce_intervals: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.name = name
        self.source = source
        self.process = process
        self.interval_seconds = interval_seconds
        self.enforce_intervals = enforce_intervals
        self.clock = clock
        self.pool = WorkerPool(max_workers, name=name)

        self._scheduler: Optional[BackgroundScheduler] = None
        self._stop_event = threading.Event()
        self._active = 0
        self._active_cond = threading.Condition()
        # Entries disappear once no caller holds or waits on the lock
        self._target_locks: weakref.WeakValueDictionary[int, threading.Lock] = weakref.WeakValueDictionary()
        self._target_locks_guard = threading.Lock()

    @property
    def job_id(self) -> str:
        return f"{self.name}_cycle_job"

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def scheduler(self) -> Optional[BackgroundScheduler]:
        return self._scheduler

    def start(self) -> None:
        """Start the background loop; returns immediately."""
        if self.stopped:
            raise SchedulerStoppedError(f"{self.name} scheduler has been stopped")
        if self.running:
            logger.warning(f"{self.name} scheduler already running")
            return

        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self._tick,
            "interval",
            seconds=self.interval_seconds,
            id=self.job_id,
            next_run_time=datetime.now(timezone.utc),  # run the first cycle right away
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_listener(self._job_error_listener, EVENT_JOB_ERROR)
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"Started {self.name} scheduler, interval {self.interval_seconds}s")

    def stop(self, wait: bool = True) -> None:
        """Signal cancellation; with ``wait`` block until every worker and manual refresh is done.

        Requests already on the wire are not aborted. Each one finishes within
        its HTTP timeout, so a waiting stop can take up to roughly the check or
        fetch timeout.
        """
        logger.info(f"Stopping {self.name} scheduler")
        self._stop_event.set()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        if wait:
            with self._active_cond:
                self._active_cond.wait_for(lambda: self._active == 0)
        logger.info(f"{self.name} scheduler stopped")

    def refresh_all(self, force: bool = False) -> CycleReport:
        """Run one full cycle synchronously; ``force`` bypasses the interval gate."""
        return self.run_cycle(force=force)

    def refresh_one(self, target_id: int) -> Any:
        """Process a single target now, regardless of its interval.

        Raises TargetNotFoundError for unknown ids and re-raises processing
        failures after logging them with the target identity.
        """
        with self._tracking():
            target = self.source.get_target(target_id)
            try:
                return self._process_target(target)
            except Exception:
                logger.exception(f"[{self.name}] manual refresh failed for {target.describe()}")
                raise

    def run_cycle(self, force: bool = False) -> CycleReport:
        with self._tracking():
            try:
                targets = self.source.list_active_targets()
            except Exception:
                logger.exception(f"[{self.name}] failed to list active targets, skipping cycle")
                return CycleReport()

            if not targets:
                logger.info(f"[{self.name}] no targets to process")
                return CycleReport()

            now = self.clock()
            due = [t for t in targets if force or self.is_due(t, now)]
            logger.info(f"[{self.name}] cycle started: {len(due)} of {len(targets)} targets due")
            processed = self.pool.run(
                due,
                self._process_target,
                cancel=self._stop_event,
                describe=lambda t: t.describe(),
            )
            logger.info(f"[{self.name}] cycle completed: {processed} processed")
            return CycleReport(total=len(targets), due=len(due), processed=processed)

    def is_due(self, target: Target, now: datetime) -> bool:
        if not self.enforce_intervals or target.last_polled is None:
            return True
        return (now - target.last_polled).total_seconds() >= target.interval

    def _tick(self) -> None:
        if self.stopped:
            return
        try:
            self.run_cycle()
        except SchedulerStoppedError:
            pass

    def _process_target(self, target: Target) -> Any:
        with self._lock_for(target.id):
            return self.process(target, self._stop_event)

    def _lock_for(self, target_id: int) -> threading.Lock:
        with self._target_locks_guard:
            lock = self._target_locks.get(target_id)
            if lock is None:
                lock = threading.Lock()
                self._target_locks[target_id] = lock
            return lock

    @contextmanager
    def _tracking(self):
        with self._active_cond:
            if self.stopped:
                raise SchedulerStoppedError(f"{self.name} scheduler has been stopped")
            self._active += 1
        try:
            yield
        finally:
            with self._active_cond:
                self._active -= 1
                self._active_cond.notify_all()

    def _job_error_listener(self, event) -> None:
        logger.error(f"[{self.name}] scheduled job crashed: {event.exception!r}")
