"""Typed interfaces for database-layer services.

All SQL access must remain in the db package and its submodules.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from hr_event_publisher.domain import Checkpoint, HealthStatus, SourcePosition


class DatabaseHealthPort(Protocol):
    """Port definition for database connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active database connection target.

        Returns:
            str: Database target label for diagnostics.

        Raises:
            RuntimeError: Raised when connection metadata is unavailable.
        """

    def db_check_health(self) -> HealthStatus:
        """Check database connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Database health status payload.

        Raises:
            ConnectionError: Raised when database cannot be reached.
        """


@dataclass(frozen=True)
class EventLogRecord:
    """Durable audit row for one published domain event.

    Attributes:
        event_id: Idempotency key.
        event_type: Event type label.
        event_category: Event category label.
        aggregate_type: Business entity kind.
        aggregate_id: Business entity identifier.
        version: Payload schema version.
        subject: Bus subject the event is delivered on.
        source_position: Position token of the causing change.
        occurred_at_utc: Source commit timestamp.
        envelope: Full JSON-compatible event envelope.
    """

    event_id: UUID
    event_type: str
    event_category: str
    aggregate_type: str
    aggregate_id: str
    version: int
    subject: str
    source_position: str
    occurred_at_utc: datetime
    envelope: dict[str, Any]


@dataclass(frozen=True)
class EventLogInsertResult:
    """Outcome of one insert-if-absent call.

    Attributes:
        inserted: True when the row was written by this call.
        delivered: True when an earlier attempt already confirmed bus delivery.
    """

    inserted: bool
    delivered: bool

    def event_log_already_present(self) -> bool:
        """Return whether the event id existed before this call."""

        return not self.inserted


@dataclass(frozen=True)
class DeadLetterEntry:
    """Candidate that could not be completed, with full triage context.

    Attributes:
        failure_kind: `enrichment_exhausted` or `validation_rejected`.
        reason: Human-readable failure reason.
        detector_name: Rule that produced the candidate.
        event_id: Candidate idempotency key.
        event_type: Candidate event type.
        candidate: JSON-compatible candidate envelope.
        change_event: JSON-compatible causing change event.
        attempt_count: Number of processing attempts made.
        diagnostics: Stage timeline of the candidate.
    """

    failure_kind: str
    reason: str
    detector_name: str
    event_id: UUID
    event_type: str
    candidate: dict[str, Any]
    change_event: dict[str, Any]
    attempt_count: int
    diagnostics: list[dict[str, Any]]


@dataclass(frozen=True)
class DeadLetterRecord:
    """Persisted dead-letter row.

    Attributes:
        dead_letter_id: Row identifier.
        entry: Recorded entry.
        recorded_at_utc: Persistence timestamp.
    """

    dead_letter_id: UUID
    entry: DeadLetterEntry
    recorded_at_utc: datetime


class DurableEventLogPort(Protocol):
    """Port definition for the durable, deduplicating event log."""

    def event_log_insert_if_absent(self, event_id: UUID, record: EventLogRecord) -> EventLogInsertResult:
        """Insert one event row unless the id already exists.

        Args:
            event_id: Idempotency key.
            record: Event log row.

        Returns:
            EventLogInsertResult: Insert and delivery flags.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

    def event_log_mark_delivered(self, event_id: UUID) -> None:
        """Record that the bus acknowledged the event.

        Args:
            event_id: Idempotency key.

        Returns:
            None: Row is updated as side effect.

        Raises:
            LookupError: Raised when the event id is unknown.
            RuntimeError: Raised when persistence fails.
        """


class DeadLetterSinkPort(Protocol):
    """Port definition for the append-only dead-letter sink."""

    def dead_letter_record(self, entry: DeadLetterEntry) -> None:
        """Append one dead-letter entry.

        Args:
            entry: Dead-letter entry.

        Returns:
            None: Entry is persisted as side effect.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

    def dead_letter_list(self, limit: int, offset: int) -> list[DeadLetterRecord]:
        """List dead letters, most recent first.

        Args:
            limit: Max rows to return.
            offset: Rows to skip.

        Returns:
            list[DeadLetterRecord]: Deterministically ordered rows.

        Raises:
            ValueError: Raised when pagination arguments are invalid.
        """


class CheckpointStorePort(Protocol):
    """Port definition for the single-row processing checkpoint."""

    def checkpoint_load(self) -> Checkpoint | None:
        """Return the persisted checkpoint, or None before the first write.

        Returns:
            Checkpoint | None: Persisted checkpoint.

        Raises:
            RuntimeError: Raised when the read fails.
        """

    def checkpoint_save(self, position: SourcePosition) -> Checkpoint:
        """Persist a new watermark; never moves the stored position backwards.

        Args:
            position: Watermark position.

        Returns:
            Checkpoint: Stored checkpoint after the write.

        Raises:
            CheckpointWriteFailed: Raised when the write fails.
        """
