"""Immutable change-event and domain-event contracts shared across layers.

Change events are produced by the change-log reader and never mutated. Domain
events are produced by detector rules and only ever rebuilt with a new payload
during enrichment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID


class ChangeOperation(str, Enum):
    """Captured row mutation kind."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SNAPSHOT = "snapshot"


@dataclass(frozen=True, order=True)
class SourcePosition:
    """Totally ordered replication-log position.

    Several records can share one `(log_file, log_offset, row_index)`; Debezium
    snapshot reads all carry the binlog position current when the snapshot
    started. `event_ordinal` numbers records inside such a run so positions stay
    strictly increasing.

    Attributes:
        log_file: Replication log file name (zero padded, so lexical order is log order).
        log_offset: Byte offset of the row event inside the log file.
        row_index: Row index inside a multi-row log event.
        event_ordinal: Order of the record among records sharing the first three fields.
    """

    log_file: str
    log_offset: int
    row_index: int = 0
    event_ordinal: int = 0

    def position_token(self) -> str:
        """Render the position as a stable resume token.

        Returns:
            str: Token in `<log_file>:<log_offset>:<row_index>` form, with a
                `#<event_ordinal>` suffix when the ordinal is not zero.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        token = f"{self.log_file}:{self.log_offset}:{self.row_index}"
        if self.event_ordinal:
            return f"{token}#{self.event_ordinal}"
        return token

    @classmethod
    def position_parse(cls, token: str) -> SourcePosition:
        """Parse a resume token produced by `position_token`.

        Args:
            token: Serialized position token.

        Returns:
            SourcePosition: Parsed position.

        Raises:
            ValueError: Raised when the token is malformed.
        """

        normalized_token = (token or "").strip()
        position_text, ordinal_separator, ordinal_text = normalized_token.partition("#")
        log_file, separator, remainder = position_text.rpartition(":")
        if not separator:
            raise ValueError(f"malformed source position token={token!r}")
        log_file, separator, offset_text = log_file.rpartition(":")
        if not separator or not log_file:
            raise ValueError(f"malformed source position token={token!r}")
        try:
            event_ordinal = int(ordinal_text) if ordinal_separator else 0
            position = cls(
                log_file=log_file,
                log_offset=int(offset_text),
                row_index=int(remainder),
                event_ordinal=event_ordinal,
            )
        except ValueError as error:
            raise ValueError(f"malformed source position token={token!r}") from error
        if ordinal_separator and event_ordinal < 1:
            raise ValueError(f"malformed source position token={token!r}")
        return position

    def position_same_record_run(self, other: SourcePosition | None) -> bool:
        """Return whether `other` shares file, offset and row index with this position."""

        if other is None:
            return False
        return (self.log_file, self.log_offset, self.row_index) == (other.log_file, other.log_offset, other.row_index)


def _domain_freeze_image(image: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if image is None:
        return None
    return MappingProxyType(dict(image))


@dataclass(frozen=True)
class ChangeEvent:
    """One captured row mutation from the source database.

    Attributes:
        table: Source table name.
        operation: Mutation kind.
        before: Row image before the mutation (absent for create and snapshot).
        after: Row image after the mutation (absent for delete).
        source_timestamp: Commit timestamp at the source, UTC.
        source_position: Resume position of this mutation.
    """

    table: str
    operation: ChangeOperation
    before: Mapping[str, Any] | None
    after: Mapping[str, Any] | None
    source_timestamp: datetime
    source_position: SourcePosition

    def __post_init__(self) -> None:
        if not self.table.strip():
            raise ValueError("table must not be blank")
        if self.before is None and self.after is None:
            raise ValueError("change event requires at least one of before/after")
        if self.operation in (ChangeOperation.CREATE, ChangeOperation.SNAPSHOT) and self.after is None:
            raise ValueError(f"{self.operation.value} change event requires after image")
        if self.operation == ChangeOperation.DELETE and self.before is None:
            raise ValueError("delete change event requires before image")
        if self.operation == ChangeOperation.UPDATE and (self.before is None or self.after is None):
            raise ValueError("update change event requires before and after images")

        object.__setattr__(self, "before", _domain_freeze_image(self.before))
        object.__setattr__(self, "after", _domain_freeze_image(self.after))

    def change_current_image(self) -> Mapping[str, Any]:
        """Return the latest known row image.

        Returns:
            Mapping[str, Any]: After image, or before image for deletes.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if self.after is not None:
            return self.after
        return self.before or {}

    def change_row_key(self, primary_key_columns: tuple[str, ...] = ("id",)) -> str:
        """Build the row identity used for lane routing and causation ids.

        Args:
            primary_key_columns: Primary key columns of the source table.

        Returns:
            str: Row identity, `/`-joined primary key values.

        Raises:
            ValueError: Raised when a primary key column is missing from the row image.
        """

        image = self.change_current_image()
        key_parts: list[str] = []
        for column in primary_key_columns:
            value = image.get(column)
            if value is None:
                raise ValueError(f"row image of table={self.table} is missing primary key column={column}")
            key_parts.append(str(value))
        return "/".join(key_parts)

    def change_causation_id(self, primary_key_columns: tuple[str, ...] = ("id",)) -> str:
        """Return the identifier other events use to reference this change."""

        return f"{self.table}/{self.change_row_key(primary_key_columns)}@{self.source_position.position_token()}"

    def change_describe(self) -> dict[str, Any]:
        """Return JSON-compatible change context for diagnostics and dead letters.

        Returns:
            dict[str, Any]: Change context payload.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return {
            "table": self.table,
            "operation": self.operation.value,
            "before": dict(self.before) if self.before is not None else None,
            "after": dict(self.after) if self.after is not None else None,
            "source_timestamp": self.source_timestamp.isoformat(),
            "source_position": self.source_position.position_token(),
        }


@dataclass(frozen=True)
class EventMetadata:
    """Causality metadata attached to every domain event.

    Attributes:
        causation_id: Identifier of the change event that produced the event.
        correlation_id: Identifier shared by events of one business process.
        source_position: Position of the causing change event.
    """

    causation_id: str
    correlation_id: str
    source_position: SourcePosition


@dataclass(frozen=True)
class DomainEvent:
    """Business-meaningful fact derived from one change event.

    Attributes:
        event_id: Deterministic idempotency key.
        event_type: Event taxonomy label, for example `EmployeePromoted`.
        event_category: Coarse taxonomy label, for example `employee`.
        aggregate_id: Business entity identifier.
        aggregate_type: Business entity kind.
        version: Payload schema version.
        payload: Business fields for the event type.
        metadata: Causality metadata.
        occurred_at_utc: Source commit timestamp of the causing change.
        detector_name: Name of the detector rule that produced the event.
    """

    event_id: UUID
    event_type: str
    event_category: str
    aggregate_id: str
    aggregate_type: str
    version: int
    payload: Mapping[str, Any]
    metadata: EventMetadata
    occurred_at_utc: datetime
    detector_name: str = field(default="")

    def event_subject(self) -> str:
        """Return the bus subject for this event.

        Returns:
            str: Subject in `events.<category>.<type>` form.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return f"events.{self.event_category}.{self.event_type}"

    def event_identity(self) -> tuple[UUID, str, str, str]:
        """Return fields enrichment must never change."""

        return (self.event_id, self.event_type, self.aggregate_id, self.aggregate_type)


@dataclass(frozen=True)
class Checkpoint:
    """Last fully processed source position.

    Attributes:
        position: Watermark position.
        updated_at_utc: Timestamp of the last write.
    """

    position: SourcePosition
    updated_at_utc: datetime
