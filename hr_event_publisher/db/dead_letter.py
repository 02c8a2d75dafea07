"""Database service for the append-only dead-letter sink."""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from hr_event_publisher.db.interfaces import DeadLetterEntry, DeadLetterRecord, DeadLetterSinkPort


class SQLAlchemyDeadLetterService(DeadLetterSinkPort):
    """SQLAlchemy implementation of the `dead_letter_event` table."""

    def __init__(self, engine: Engine):
        """Initialize dead-letter service.

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

    def dead_letter_record(self, entry: DeadLetterEntry) -> None:
        """Append one dead-letter entry.

        Args:
            entry: Dead-letter entry.

        Returns:
            None: Entry is persisted as side effect.

        Raises:
            ValueError: Raised when required entry fields are blank.
            RuntimeError: Raised when persistence fails.
        """

        if not entry.failure_kind.strip():
            raise ValueError("entry.failure_kind must not be blank")
        if not entry.reason.strip():
            raise ValueError("entry.reason must not be blank")

        try:
            with self._engine.begin() as connection:
                connection.execute(
                    text(
                        "INSERT INTO dead_letter_event ("
                        "failure_kind, reason, detector_name, event_id, event_type, "
                        "candidate, change_event, attempt_count, diagnostics"
                        ") VALUES ("
                        ":failure_kind, :reason, :detector_name, :event_id, :event_type, "
                        "CAST(:candidate AS jsonb), CAST(:change_event AS jsonb), :attempt_count, "
                        "CAST(:diagnostics AS jsonb)"
                        ")"
                    ),
                    {
                        "failure_kind": entry.failure_kind,
                        "reason": entry.reason,
                        "detector_name": entry.detector_name,
                        "event_id": entry.event_id,
                        "event_type": entry.event_type,
                        "candidate": json.dumps(entry.candidate, sort_keys=True, default=str),
                        "change_event": json.dumps(entry.change_event, sort_keys=True, default=str),
                        "attempt_count": entry.attempt_count,
                        "diagnostics": json.dumps(entry.diagnostics, default=str),
                    },
                )
        except SQLAlchemyError as error:
            raise RuntimeError("failed to record dead-letter entry") from error

    def dead_letter_list(self, limit: int, offset: int) -> list[DeadLetterRecord]:
        """List dead letters, most recent first.

        Args:
            limit: Max rows to return.
            offset: Rows to skip.

        Returns:
            list[DeadLetterRecord]: Rows ordered by record time then id, descending.

        Raises:
            ValueError: Raised when pagination arguments are invalid.
            RuntimeError: Raised when the query fails.
        """

        if limit < 1:
            raise ValueError("limit must be >= 1")
        if offset < 0:
            raise ValueError("offset must be >= 0")

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(
                        "SELECT dead_letter_id, failure_kind, reason, detector_name, event_id, event_type, "
                        "candidate, change_event, attempt_count, diagnostics, recorded_at_utc "
                        "FROM dead_letter_event "
                        "ORDER BY recorded_at_utc DESC, dead_letter_id DESC "
                        "LIMIT :limit OFFSET :offset"
                    ),
                    {"limit": limit, "offset": offset},
                ).mappings().all()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to list dead-letter entries") from error

        return [self._db_dead_letter_map_row(row) for row in rows]

    def _db_dead_letter_map_row(self, row: Any) -> DeadLetterRecord:
        """Map one SQL row into a dead-letter record.

        Args:
            row: SQL row mapping.

        Returns:
            DeadLetterRecord: Mapped record.

        Raises:
            KeyError: Raised when expected columns are missing.
        """

        return DeadLetterRecord(
            dead_letter_id=row["dead_letter_id"],
            entry=DeadLetterEntry(
                failure_kind=str(row["failure_kind"]),
                reason=str(row["reason"]),
                detector_name=str(row["detector_name"]),
                event_id=row["event_id"],
                event_type=str(row["event_type"]),
                candidate=dict(row["candidate"] or {}),
                change_event=dict(row["change_event"] or {}),
                attempt_count=int(row["attempt_count"]),
                diagnostics=list(row["diagnostics"] or []),
            ),
            recorded_at_utc=row["recorded_at_utc"],
        )
