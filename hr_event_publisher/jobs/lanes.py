"""Keyed worker lanes preserving per-entity processing order."""

from __future__ import annotations

import hashlib
import logging
import queue
import threading
from typing import Callable, Final, Generic, TypeVar

logger = logging.getLogger(__name__)

LaneItem = TypeVar("LaneItem")

_LANE_STOP: Final[object] = object()


def job_lane_index_for(lane_key: str, lane_count: int) -> int:
    """Return the stable lane index of one routing key.

    Args:
        lane_key: Routing key, `<table>:<row key>`.
        lane_count: Number of lanes.

    Returns:
        int: Lane index in `[0, lane_count)`.

    Raises:
        ValueError: Raised when lane count is not positive.
    """

    if lane_count < 1:
        raise ValueError("lane_count must be >= 1")
    digest = hashlib.sha256(lane_key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % lane_count


class LaneWorkerPool(Generic[LaneItem]):
    """Fixed set of worker threads, each draining its own FIFO queue.

    Items sharing a lane key always land on the same lane and are handled in
    submission order. The first unexpected handler exception is kept and stops
    every lane from handling further items, leaving them unresolved.
    """

    def __init__(
        self,
        lane_count: int,
        handler: Callable[[LaneItem], None],
        thread_name_prefix: str = "event-lane",
    ):
        """Initialize lane pool.

        Args:
            lane_count: Number of lanes and worker threads.
            handler: Callable processing one item on its lane thread.
            thread_name_prefix: Worker thread name prefix.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when config values are invalid.
        """

        if lane_count < 1:
            raise ValueError("lane_count must be >= 1")
        if handler is None:
            raise ValueError("handler must not be None")

        self._lane_count = lane_count
        self._handler = handler
        self._thread_name_prefix = thread_name_prefix
        self._queues: list[queue.Queue] = [queue.Queue() for _ in range(lane_count)]
        self._threads: list[threading.Thread] = []
        self._abort_event = threading.Event()
        self._failure_lock = threading.Lock()
        self._failure: BaseException | None = None

    def lane_start(self) -> None:
        """Start every lane worker thread.

        Raises:
            RuntimeError: Raised when the pool was already started.
        """

        if self._threads:
            raise RuntimeError("lane pool already started")
        for lane_index, lane_queue in enumerate(self._queues):
            worker = threading.Thread(
                target=self._lane_run,
                args=(lane_index, lane_queue),
                name=f"{self._thread_name_prefix}-{lane_index}",
                daemon=True,
            )
            worker.start()
            self._threads.append(worker)

    def lane_submit(self, lane_key: str, item: LaneItem) -> int:
        """Enqueue one item on the lane owning `lane_key`.

        Args:
            lane_key: Routing key.
            item: Work item.

        Returns:
            int: Lane index the item was queued on.

        Raises:
            RuntimeError: Raised when the pool is not running.
        """

        if not self._threads:
            raise RuntimeError("lane pool is not started")
        lane_index = job_lane_index_for(lane_key, self._lane_count)
        self._queues[lane_index].put(item)
        return lane_index

    def lane_stop(self, drain: bool = True, timeout_seconds: float | None = None) -> None:
        """Stop the pool after queued items are handled, or dropped when not draining.

        Args:
            drain: Handle already queued items before stopping.
            timeout_seconds: Optional per-thread join timeout.

        Returns:
            None: Threads are joined as side effect.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        if not drain:
            self._abort_event.set()
        for lane_queue in self._queues:
            lane_queue.put(_LANE_STOP)
        for worker in self._threads:
            worker.join(timeout_seconds)

    def lane_abort(self) -> None:
        """Stop handling queued items; items still queued stay unprocessed."""

        self._abort_event.set()

    def lane_failure(self) -> BaseException | None:
        """Return the first unexpected handler exception, if any."""

        with self._failure_lock:
            return self._failure

    def _lane_run(self, lane_index: int, lane_queue: queue.Queue) -> None:
        while True:
            item = lane_queue.get()
            if item is _LANE_STOP:
                return
            if self._abort_event.is_set() or self.lane_failure() is not None:
                continue
            try:
                self._handler(item)
            except Exception as error:  # pylint: disable=broad-exception-caught
                logger.error("lane=%s handler failed: %s", lane_index, error, exc_info=error)
                with self._failure_lock:
                    if self._failure is None:
                        self._failure = error
