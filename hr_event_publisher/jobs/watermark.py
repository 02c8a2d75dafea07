"""Contiguous-prefix watermark over concurrently resolved change events."""

from __future__ import annotations

import threading

from hr_event_publisher.domain import SourcePosition


class WatermarkTracker:
    """Track the highest source position below which every change is resolved.

    Intake registers each change event in source order and receives a sequence
    number. Lanes resolve sequences in any order. The watermark only advances
    across the contiguous resolved prefix, so it never passes an unresolved
    change and never decreases.
    """

    def __init__(self, initial_position: SourcePosition | None = None):
        """Initialize tracker.

        Args:
            initial_position: Position loaded from the checkpoint, if any.

        Returns:
            None: Initializer does not return a value.

        Raises:
            RuntimeError: This initializer does not raise runtime errors.
        """

        self._lock = threading.Lock()
        self._watermark = initial_position
        self._last_registered = initial_position
        self._next_sequence = 0
        self._prefix_end = 0
        self._positions: dict[int, SourcePosition] = {}
        self._resolved: set[int] = set()

    def watermark_register(self, position: SourcePosition) -> int:
        """Register one change event at intake.

        Args:
            position: Source position of the change event.

        Returns:
            int: Sequence number to resolve later.

        Raises:
            ValueError: Raised when positions are not strictly increasing.
        """

        with self._lock:
            if self._last_registered is not None and position <= self._last_registered:
                raise ValueError(
                    f"position={position.position_token()} is not after "
                    f"last registered position={self._last_registered.position_token()}"
                )
            sequence = self._next_sequence
            self._next_sequence += 1
            self._positions[sequence] = position
            self._last_registered = position
            return sequence

    def watermark_resolve(self, sequence: int) -> SourcePosition | None:
        """Mark one change event resolved and advance across the resolved prefix.

        Args:
            sequence: Sequence number returned by `watermark_register`.

        Returns:
            SourcePosition | None: Watermark after this call.

        Raises:
            KeyError: Raised when the sequence is unknown or already resolved.
        """

        with self._lock:
            if sequence not in self._positions or sequence in self._resolved:
                raise KeyError(f"sequence={sequence} is not pending")
            self._resolved.add(sequence)
            while self._prefix_end in self._resolved:
                self._resolved.discard(self._prefix_end)
                self._watermark = self._positions.pop(self._prefix_end)
                self._prefix_end += 1
            return self._watermark

    def watermark_position(self) -> SourcePosition | None:
        with self._lock:
            return self._watermark

    def watermark_advanced_count(self) -> int:
        """Return how many registered change events the watermark has passed."""

        with self._lock:
            return self._prefix_end

    def watermark_pending_count(self) -> int:
        """Return how many registered change events are not yet behind the watermark."""

        with self._lock:
            return len(self._positions)
