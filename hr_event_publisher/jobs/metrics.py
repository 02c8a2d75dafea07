"""Thread-safe pipeline counters exposed on the status API."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Final

from hr_event_publisher.domain import ChangeEvent, DetectionFault

PIPELINE_COUNTER_NAMES: Final[tuple[str, ...]] = (
    "changes_received",
    "changes_resolved",
    "candidates_detected",
    "events_published",
    "duplicates_ignored",
    "dead_lettered",
    "detection_faults",
    "enrichment_retries",
    "publish_retries",
    "checkpoint_writes",
)


class PipelineCounters:
    """Monotonic counters shared by intake, lanes and the checkpoint writer."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Counter[str] = Counter()

    def counters_increment(self, name: str, amount: int = 1) -> None:
        """Increase one named counter.

        Args:
            name: Counter name from `PIPELINE_COUNTER_NAMES`.
            amount: Non-negative increment.

        Returns:
            None: Counter is updated as side effect.

        Raises:
            ValueError: Raised when the name is unknown or the amount is negative.
        """

        if name not in PIPELINE_COUNTER_NAMES:
            raise ValueError(f"unknown counter name={name}")
        if amount < 0:
            raise ValueError("amount must be >= 0")
        with self._lock:
            self._counts[name] += amount

    def counters_snapshot(self) -> dict[str, int]:
        """Return a consistent copy of every counter, zeros included."""

        with self._lock:
            return {name: self._counts[name] for name in PIPELINE_COUNTER_NAMES}

    def counters_record_detection_fault(self, rule_name: str, change: ChangeEvent, error: DetectionFault) -> None:
        """Detection fault listener counting isolated rule failures."""

        del rule_name, change, error
        self.counters_increment("detection_faults")
