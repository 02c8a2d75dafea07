"""Exponential retry backoff with cap and jitter."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable


@dataclass(frozen=True)
class RetryBackoffPolicy:
    """Immutable retry backoff config and calculation helpers.

    Attributes:
        backoff_base_seconds: Base delay for exponential backoff.
        max_backoff_seconds: Exponential delay cap before jitter.
        jitter_min_multiplier: Minimum jitter multiplier.
        jitter_max_multiplier: Maximum jitter multiplier.
        random_unit_interval_provider: Provider returning value in [0.0, 1.0].
    """

    backoff_base_seconds: float
    max_backoff_seconds: float
    jitter_min_multiplier: float = 0.8
    jitter_max_multiplier: float = 1.2
    random_unit_interval_provider: Callable[[], float] = field(default=random.random)

    def __post_init__(self) -> None:
        if self.backoff_base_seconds < 0:
            raise ValueError("backoff_base_seconds must be >= 0")
        if self.max_backoff_seconds <= 0:
            raise ValueError("max_backoff_seconds must be > 0")
        if self.jitter_min_multiplier <= 0:
            raise ValueError("jitter_min_multiplier must be > 0")
        if self.jitter_max_multiplier < self.jitter_min_multiplier:
            raise ValueError("jitter_max_multiplier must be >= jitter_min_multiplier")

    def retry_wait_seconds(self, retry_index: int) -> float:
        """Calculate exponential retry wait with cap and jitter.

        Args:
            retry_index: Zero-based retry attempt index.

        Returns:
            float: Computed wait seconds before the retry.

        Raises:
            ValueError: Raised when retry index is negative.
            RuntimeError: Raised when jitter provider returns out-of-range value.
        """

        if retry_index < 0:
            raise ValueError("retry_index must be >= 0")

        backoff_seconds = self.backoff_base_seconds * (2 ** min(retry_index, 32))
        capped_backoff_seconds = min(backoff_seconds, self.max_backoff_seconds)
        return capped_backoff_seconds * self.retry_jitter_multiplier()

    def retry_jitter_multiplier(self) -> float:
        """Return jitter multiplier using configured min/max bounds.

        Returns:
            float: Jitter multiplier value.

        Raises:
            RuntimeError: Raised when jitter source returns value outside [0.0, 1.0].
        """

        random_ratio = float(self.random_unit_interval_provider())
        if random_ratio < 0.0 or random_ratio > 1.0:
            raise RuntimeError("random_unit_interval_provider must return a value in [0.0, 1.0]")

        jitter_span = self.jitter_max_multiplier - self.jitter_min_multiplier
        return self.jitter_min_multiplier + (random_ratio * jitter_span)
