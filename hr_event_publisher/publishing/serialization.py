"""Deterministic JSON serialization of domain events.

The same event always serializes to identical bytes: keys are sorted and
non-JSON values are rendered with fixed rules.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from hr_event_publisher.db.interfaces import EventLogRecord
from hr_event_publisher.domain import DomainEvent


def _publishing_json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"value of type {type(value).__name__} is not JSON serializable")


def publishing_event_envelope(event: DomainEvent) -> dict[str, Any]:
    """Build the JSON-compatible envelope of one event.

    Args:
        event: Domain event.

    Returns:
        dict[str, Any]: Envelope with identity, taxonomy, payload and metadata.

    Raises:
        TypeError: Raised when the payload carries an unsupported value type.
    """

    envelope = {
        "eventId": str(event.event_id),
        "eventType": event.event_type,
        "eventCategory": event.event_category,
        "aggregateId": event.aggregate_id,
        "aggregateType": event.aggregate_type,
        "version": event.version,
        "occurredAt": event.occurred_at_utc.isoformat(),
        "payload": dict(event.payload),
        "metadata": {
            "causationId": event.metadata.causation_id,
            "correlationId": event.metadata.correlation_id,
            "sourcePosition": event.metadata.source_position.position_token(),
        },
    }
    return json.loads(json.dumps(envelope, default=_publishing_json_default, sort_keys=True))


def publishing_serialize_event(event: DomainEvent) -> bytes:
    """Serialize one event into canonical UTF-8 JSON bytes.

    Args:
        event: Domain event.

    Returns:
        bytes: Canonical JSON bytes.

    Raises:
        TypeError: Raised when the payload carries an unsupported value type.
    """

    return json.dumps(
        publishing_event_envelope(event),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def publishing_build_log_record(event: DomainEvent) -> EventLogRecord:
    """Build the durable log row for one event.

    Args:
        event: Domain event.

    Returns:
        EventLogRecord: Event log row.

    Raises:
        TypeError: Raised when the payload carries an unsupported value type.
    """

    return EventLogRecord(
        event_id=event.event_id,
        event_type=event.event_type,
        event_category=event.event_category,
        aggregate_type=event.aggregate_type,
        aggregate_id=event.aggregate_id,
        version=event.version,
        subject=event.event_subject(),
        source_position=event.metadata.source_position.position_token(),
        occurred_at_utc=event.occurred_at_utc,
        envelope=publishing_event_envelope(event),
    )
