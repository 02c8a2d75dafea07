"""Deterministic identifier derivation for replay-safe domain events."""

from __future__ import annotations

from typing import Final
from uuid import UUID, uuid5

EVENT_ID_NAMESPACE: Final[UUID] = UUID("4f1c9c1e-8a0e-5d55-9a51-3a8f0d7b6e21")
CORRELATION_ID_NAMESPACE: Final[UUID] = UUID("b7d2e0a4-61c3-5f0b-8e47-92c1d5a3f806")


def domain_derive_event_id(causation_id: str, detector_name: str, event_type: str) -> UUID:
    """Derive the idempotency key of one candidate event.

    Re-detecting the same change with the same rule always yields the same id,
    so replays after a crash deduplicate in the durable log.

    Args:
        causation_id: Causation identifier of the source change event.
        detector_name: Name of the rule producing the candidate.
        event_type: Event type label.

    Returns:
        UUID: Name-based UUIDv5 identifier.

    Raises:
        ValueError: Raised when one input is blank.
    """

    for value, field_name in (
        (causation_id, "causation_id"),
        (detector_name, "detector_name"),
        (event_type, "event_type"),
    ):
        if not value or not value.strip():
            raise ValueError(f"{field_name} must not be blank")

    return uuid5(EVENT_ID_NAMESPACE, f"{causation_id}|{detector_name}|{event_type}")


def domain_derive_correlation_id(causation_id: str) -> str:
    """Derive the correlation id shared by all events of one change event.

    Args:
        causation_id: Causation identifier of the source change event.

    Returns:
        str: Correlation identifier string.

    Raises:
        ValueError: Raised when causation id is blank.
    """

    if not causation_id or not causation_id.strip():
        raise ValueError("causation_id must not be blank")
    return str(uuid5(CORRELATION_ID_NAMESPACE, causation_id))
