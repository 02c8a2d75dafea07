"""Database service for the durable, deduplicating domain event log."""

from __future__ import annotations

import json
from uuid import UUID

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from hr_event_publisher.db.interfaces import DurableEventLogPort, EventLogInsertResult, EventLogRecord


class SQLAlchemyDurableEventLogService(DurableEventLogPort):
    """SQLAlchemy implementation of the `domain_event_log` table.

    The `event_id` primary key is the single point of deduplication: inserts use
    `ON CONFLICT DO NOTHING` so concurrent lanes racing on one id never fail.
    """

    def __init__(self, engine: Engine):
        """Initialize event log service.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when engine is invalid.
        """

        if engine is None:
            raise ValueError("engine must not be None")

        self._engine = engine

    def event_log_insert_if_absent(self, event_id: UUID, record: EventLogRecord) -> EventLogInsertResult:
        """Insert one event row unless the id already exists.

        Args:
            event_id: Idempotency key.
            record: Event log row.

        Returns:
            EventLogInsertResult: Insert and delivery flags.

        Raises:
            ValueError: Raised when the record id does not match `event_id`.
            RuntimeError: Raised when persistence fails.
        """

        if record.event_id != event_id:
            raise ValueError("record.event_id must match event_id")

        try:
            with self._engine.begin() as connection:
                inserted_row = connection.execute(
                    text(
                        "INSERT INTO domain_event_log ("
                        "event_id, event_type, event_category, aggregate_type, aggregate_id, version, "
                        "subject, source_position, occurred_at_utc, envelope"
                        ") VALUES ("
                        ":event_id, :event_type, :event_category, :aggregate_type, :aggregate_id, :version, "
                        ":subject, :source_position, :occurred_at_utc, CAST(:envelope AS jsonb)"
                        ") "
                        "ON CONFLICT (event_id) DO NOTHING "
                        "RETURNING event_id"
                    ),
                    {
                        "event_id": event_id,
                        "event_type": record.event_type,
                        "event_category": record.event_category,
                        "aggregate_type": record.aggregate_type,
                        "aggregate_id": record.aggregate_id,
                        "version": record.version,
                        "subject": record.subject,
                        "source_position": record.source_position,
                        "occurred_at_utc": record.occurred_at_utc,
                        "envelope": json.dumps(record.envelope, sort_keys=True),
                    },
                ).first()
                if inserted_row is not None:
                    return EventLogInsertResult(inserted=True, delivered=False)

                existing_row = connection.execute(
                    text("SELECT delivered_at_utc FROM domain_event_log WHERE event_id = :event_id"),
                    {"event_id": event_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to write domain event log row") from error

        if existing_row is None:
            raise RuntimeError(f"domain event log row vanished after conflict event_id={event_id}")
        return EventLogInsertResult(inserted=False, delivered=existing_row["delivered_at_utc"] is not None)

    def event_log_mark_delivered(self, event_id: UUID) -> None:
        """Stamp the delivery timestamp on one event row.

        The first delivery timestamp is kept on repeated calls.

        Args:
            event_id: Idempotency key.

        Returns:
            None: Row is updated as side effect.

        Raises:
            LookupError: Raised when the event id is unknown.
            RuntimeError: Raised when persistence fails.
        """

        try:
            with self._engine.begin() as connection:
                updated_row = connection.execute(
                    text(
                        "UPDATE domain_event_log "
                        "SET delivered_at_utc = COALESCE(delivered_at_utc, now()) "
                        "WHERE event_id = :event_id "
                        "RETURNING event_id"
                    ),
                    {"event_id": event_id},
                ).first()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to mark domain event delivered") from error

        if updated_row is None:
            raise LookupError(f"domain event log row not found event_id={event_id}")
