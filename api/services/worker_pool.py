from queue import Empty, Queue
from typing import Callable, Iterable, Optional, TypeVar
import logging
import threading

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkerPool:
    """
    Bounded fan-out for one batch of independent tasks.

    The whole batch is queued before any worker starts, so workers simply drain
    the queue and exit when it is empty. ``run`` returns only after every worker
    thread has been joined. Handler exceptions are logged and never stop the
    batch; a set ``cancel`` event stops workers from taking further tasks.
    """

    def __init__(self, max_workers: int, name: str = "worker"):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.name = name

    def run(
        self,
        tasks: Iterable[T],
        handler: Callable[[T], None],
        cancel: Optional[threading.Event] = None,
        describe: Callable[[T], str] = repr,
    ) -> int:
        queue: Queue = Queue()
        for task in tasks:
            queue.put(task)

        total = queue.qsize()
        if total == 0:
            return 0

        completed = []
        completed_lock = threading.Lock()

        def worker():
            while True:
                if cancel is not None and cancel.is_set():
                    return
                try:
                    task = queue.get_nowait()
                except Empty:
                    return
                try:
                    handler(task)
                except Exception:
                    logger.exception(f"[{self.name}] task failed for {describe(task)}")
                    continue
                with completed_lock:
                    completed.append(task)

        threads = [
            threading.Thread(target=worker, name=f"{self.name}-{i}", daemon=True)
            for i in range(min(self.max_workers, total))
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        skipped = queue.qsize()
        if skipped:
            logger.info(f"[{self.name}] cancelled with {skipped} of {total} tasks not started")
        return len(completed)
