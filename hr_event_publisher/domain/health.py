"""Health contract shared by the db and api layers."""

from dataclasses import dataclass


@dataclass(frozen=True)
class HealthStatus:
    """Result of one dependency health probe.

    Attributes:
        status: `ok` when the dependency answered.
        detail: Operator-facing description of what was verified.
    """

    status: str
    detail: str
