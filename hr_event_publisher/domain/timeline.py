"""Stage timeline helpers for change-event processing diagnostics."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def domain_build_stage_event(
    stage: str,
    status: str,
    details: dict[str, Any] | None = None,
    at_utc: datetime | None = None,
) -> dict[str, object]:
    """Build one structured stage transition entry.

    Args:
        stage: Processing stage (`detecting`, `enriching`, `validating`, `publishing`).
        status: Stage status marker (`started`, `retrying`, `completed`, `failed`).
        details: Optional structured details object.
        at_utc: Optional transition timestamp, defaults to now.

    Returns:
        dict[str, object]: JSON-compatible stage entry.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    event_payload: dict[str, object] = {
        "stage": stage,
        "status": status,
        "at_utc": (at_utc or datetime.now(timezone.utc)).isoformat(),
    }
    if details is not None:
        event_payload["details"] = details
    return event_payload
