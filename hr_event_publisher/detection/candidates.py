"""Candidate domain-event construction shared by detector rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from hr_event_publisher.domain import (
    ChangeEvent,
    DomainEvent,
    EventMetadata,
    domain_derive_correlation_id,
    domain_derive_event_id,
)
from hr_event_publisher.domain.values import domain_value_to_iso_date


@dataclass(frozen=True)
class EventTarget:
    """Taxonomy and aggregate binding of the events one rule emits.

    Attributes:
        event_category: Coarse category label, for example `employee`.
        aggregate_type: Business entity kind.
        aggregate_id_column: Row column holding the aggregate identifier.
        primary_key_columns: Primary key columns of the source table.
        version: Payload schema version.
    """

    event_category: str
    aggregate_type: str
    aggregate_id_column: str = "id"
    primary_key_columns: tuple[str, ...] = ("id",)
    version: int = 1


def detection_build_candidate(
    change: ChangeEvent,
    detector_name: str,
    event_type: str,
    target: EventTarget,
    payload: Mapping[str, Any],
) -> DomainEvent:
    """Build one candidate with deterministic identity and causality metadata.

    Args:
        change: Causing change event.
        detector_name: Name of the emitting rule.
        event_type: Event type label.
        target: Taxonomy and aggregate binding.
        payload: Business payload fields.

    Returns:
        DomainEvent: Candidate event, not yet enriched.

    Raises:
        ValueError: Raised when the aggregate identifier is missing from the row image.
    """

    image = change.change_current_image()
    aggregate_value = image.get(target.aggregate_id_column)
    if aggregate_value is None:
        raise ValueError(
            f"table={change.table} row is missing aggregate column={target.aggregate_id_column}"
        )

    causation_id = change.change_causation_id(target.primary_key_columns)
    return DomainEvent(
        event_id=domain_derive_event_id(
            causation_id=causation_id,
            detector_name=detector_name,
            event_type=event_type,
        ),
        event_type=event_type,
        event_category=target.event_category,
        aggregate_id=str(aggregate_value),
        aggregate_type=target.aggregate_type,
        version=target.version,
        payload=dict(payload),
        metadata=EventMetadata(
            causation_id=causation_id,
            correlation_id=domain_derive_correlation_id(causation_id),
            source_position=change.source_position,
        ),
        occurred_at_utc=change.source_timestamp,
        detector_name=detector_name,
    )


def detection_project_columns(image: Mapping[str, Any], column_to_key: Mapping[str, str]) -> dict[str, Any]:
    """Copy selected row columns into payload keys.

    Columns named `*_date` are normalized to ISO dates.

    Args:
        image: Row image.
        column_to_key: Row column name to payload key mapping.

    Returns:
        dict[str, Any]: Projected payload fields, missing columns as None.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    projected: dict[str, Any] = {}
    for column, payload_key in column_to_key.items():
        value = image.get(column)
        if column.endswith("_date"):
            value = domain_value_to_iso_date(value)
        projected[payload_key] = value
    return projected
