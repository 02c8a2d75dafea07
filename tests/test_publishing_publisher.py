"""Regression tests for idempotent publishing and deterministic serialization."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from hr_event_publisher.db.interfaces import EventLogInsertResult, EventLogRecord
from hr_event_publisher.domain import DomainEvent, EventMetadata, SourcePosition
from hr_event_publisher.publishing import (
    IdempotentPublisher,
    PublishStatus,
    publishing_event_envelope,
    publishing_serialize_event,
)

_EVENT_ID = UUID("0b8f3f0e-5d0e-5c9a-9f1d-2d6d3b7a1c42")


class _EventLogStub:
    """In-memory durable event log keyed by event id."""

    def __init__(self, fail_writes: bool = False):
        """Initialize empty log.

        Args:
            fail_writes: Raise RuntimeError on every insert.

        Returns:
            None: Initializer does not return values.

        Raises:
            RuntimeError: This initializer does not raise runtime errors.
        """

        self.rows: dict[UUID, EventLogRecord] = {}
        self.delivered: set[UUID] = set()
        self._fail_writes = fail_writes

    def event_log_insert_if_absent(self, event_id: UUID, record: EventLogRecord) -> EventLogInsertResult:
        """Insert row unless present.

        Args:
            event_id: Idempotency key.
            record: Event log row.

        Returns:
            EventLogInsertResult: Insert and delivery flags.

        Raises:
            RuntimeError: Raised when write failures are injected.
        """

        if self._fail_writes:
            raise RuntimeError("event store unavailable")
        if event_id in self.rows:
            return EventLogInsertResult(inserted=False, delivered=event_id in self.delivered)
        self.rows[event_id] = record
        return EventLogInsertResult(inserted=True, delivered=False)

    def event_log_mark_delivered(self, event_id: UUID) -> None:
        """Mark row delivered.

        Args:
            event_id: Idempotency key.

        Returns:
            None: Row is updated as side effect.

        Raises:
            LookupError: Raised when the row is missing.
        """

        if event_id not in self.rows:
            raise LookupError(f"missing event_id={event_id}")
        self.delivered.add(event_id)


class _BusStub:
    """Bus transport stub with consumer-side event id deduplication."""

    def __init__(self, timeouts_before_success: int = 0, ack_lost: bool = False):
        """Initialize bus stub.

        Args:
            timeouts_before_success: Leading sends that time out before reaching the bus.
            ack_lost: Deliver the first send but time out before acknowledging it.

        Returns:
            None: Initializer does not return values.

        Raises:
            RuntimeError: This initializer does not raise runtime errors.
        """

        self._timeouts_remaining = timeouts_before_success
        self._ack_lost = ack_lost
        self.frames: list[tuple[str, bytes, str]] = []
        self.consumed_event_ids: list[str] = []

    def bus_send(self, subject: str, body: bytes, event_id: str) -> None:
        """Record frame and apply consumer deduplication.

        Args:
            subject: Bus subject.
            body: Serialized event.
            event_id: Idempotency key header.

        Returns:
            None: Frame is recorded as side effect.

        Raises:
            TimeoutError: Raised while injected timeouts remain.
        """

        if self._timeouts_remaining > 0:
            self._timeouts_remaining -= 1
            raise TimeoutError("bus acknowledgment timed out")
        self.frames.append((subject, body, event_id))
        if event_id not in self.consumed_event_ids:
            self.consumed_event_ids.append(event_id)
        if self._ack_lost:
            self._ack_lost = False
            raise TimeoutError("bus acknowledgment timed out")


def _build_event(payload: dict | None = None) -> DomainEvent:
    """Build a validated promotion event.

    Args:
        payload: Optional payload override.

    Returns:
        DomainEvent: Event to publish.

    Raises:
        ValueError: This helper does not raise value errors.
    """

    return DomainEvent(
        event_id=_EVENT_ID,
        event_type="EmployeePromoted",
        event_category="employee",
        aggregate_id="42",
        aggregate_type="Employee",
        version=1,
        payload=payload
        or {"previousPosition": "IC3", "newPosition": "IC4", "newSalary": Decimal("150000.00")},
        metadata=EventMetadata(
            causation_id="employees/42@mysql-bin.000003:4512:0",
            correlation_id="3e1f0a9c-0d4b-5e55-8a8e-0e3f6f1d2b7a",
            source_position=SourcePosition("mysql-bin.000003", 4512),
        ),
        occurred_at_utc=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        detector_name="employees.promoted",
    )


def test_publishing_first_publish_writes_log_then_sends_to_bus() -> None:
    """Publish a new event once to the log and once to the bus.

    Returns:
        None: Assertions validate published outcome.

    Raises:
        AssertionError: Raised when publish flow is wrong.
    """

    event_log = _EventLogStub()
    bus = _BusStub()
    publisher = IdempotentPublisher(event_log=event_log, bus_transport=bus)

    outcome = publisher.publish(_build_event())

    assert outcome.status == PublishStatus.PUBLISHED
    assert outcome.reason is None
    assert list(event_log.rows) == [_EVENT_ID]
    assert event_log.rows[_EVENT_ID].subject == "events.employee.EmployeePromoted"
    assert event_log.rows[_EVENT_ID].source_position == "mysql-bin.000003:4512:0"
    assert _EVENT_ID in event_log.delivered
    assert [(subject, event_id) for subject, _, event_id in bus.frames] == [
        ("events.employee.EmployeePromoted", str(_EVENT_ID))
    ]


def test_publishing_republish_of_delivered_event_is_duplicate_ignored() -> None:
    """Short-circuit a replayed event that is already delivered.

    Returns:
        None: Assertions validate duplicate outcome.

    Raises:
        AssertionError: Raised when delivered event is resent.
    """

    event_log = _EventLogStub()
    bus = _BusStub()
    publisher = IdempotentPublisher(event_log=event_log, bus_transport=bus)

    first_outcome = publisher.publish(_build_event())
    second_outcome = publisher.publish(_build_event())

    assert first_outcome.status == PublishStatus.PUBLISHED
    assert second_outcome.status == PublishStatus.DUPLICATE_IGNORED
    assert second_outcome.outcome_is_terminal_success() is True
    assert len(bus.frames) == 1


def test_publishing_bus_timeout_then_retry_keeps_one_durable_record() -> None:
    """Resend after a lost acknowledgment with one durable row and one consumed event.

    Returns:
        None: Assertions validate retry-after-timeout behavior.

    Raises:
        AssertionError: Raised when retry duplicates durable rows or consumed events.
    """

    event_log = _EventLogStub()
    bus = _BusStub(ack_lost=True)
    publisher = IdempotentPublisher(event_log=event_log, bus_transport=bus)

    failed_outcome = publisher.publish(_build_event())
    retry_outcome = publisher.publish(_build_event())

    assert failed_outcome.status == PublishStatus.FAILED
    assert "bus send failed" in (failed_outcome.reason or "")
    assert retry_outcome.status == PublishStatus.PUBLISHED
    assert len(event_log.rows) == 1
    assert len(bus.frames) == 2
    assert bus.consumed_event_ids == [str(_EVENT_ID)]


def test_publishing_durable_write_failure_never_reaches_bus() -> None:
    """Report failure without sending when the durable write fails.

    Returns:
        None: Assertions validate write-before-send ordering.

    Raises:
        AssertionError: Raised when bus is called after failed write.
    """

    bus = _BusStub()
    publisher = IdempotentPublisher(event_log=_EventLogStub(fail_writes=True), bus_transport=bus)

    outcome = publisher.publish(_build_event())

    assert outcome.status == PublishStatus.FAILED
    assert outcome.reason == "durable log write failed: event store unavailable"
    assert bus.frames == []


def test_publishing_unserializable_payload_is_reported_as_failure() -> None:
    """Report failure when the payload holds a value JSON cannot represent.

    Returns:
        None: Assertions validate serialization failure outcome.

    Raises:
        AssertionError: Raised when unserializable event is published.
    """

    event_log = _EventLogStub()
    publisher = IdempotentPublisher(event_log=event_log, bus_transport=_BusStub())

    outcome = publisher.publish(_build_event({"newPosition": object()}))

    assert outcome.status == PublishStatus.FAILED
    assert (outcome.reason or "").startswith("serialization failed")
    assert event_log.rows == {}


def test_publishing_serialization_is_byte_stable_and_sorted() -> None:
    """Serialize the same event to identical, key-sorted bytes.

    Returns:
        None: Assertions validate deterministic serialization.

    Raises:
        AssertionError: Raised when serialization differs between calls.
    """

    first_body = publishing_serialize_event(_build_event())
    second_body = publishing_serialize_event(_build_event())
    decoded_body = json.loads(first_body)

    assert first_body == second_body
    assert list(decoded_body) == sorted(decoded_body)
    assert decoded_body["eventId"] == str(_EVENT_ID)
    assert decoded_body["occurredAt"] == "2026-10-18T09:30:00+00:00"
    assert decoded_body["payload"]["newSalary"] == "150000.00"
    assert decoded_body["metadata"]["sourcePosition"] == "mysql-bin.000003:4512:0"
    assert publishing_event_envelope(_build_event()) == decoded_body
