"""Database service for the single-row transformation checkpoint."""

from __future__ import annotations

from typing import Final

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from hr_event_publisher.db.interfaces import CheckpointStorePort
from hr_event_publisher.domain import Checkpoint, CheckpointWriteFailed, SourcePosition


class SQLAlchemyCheckpointStore(CheckpointStorePort):
    """SQLAlchemy implementation of the `transformation_checkpoint` table.

    One row per pipeline name. Saves are monotonic: the upsert only replaces the
    stored position when the new `(log_file, log_offset, row_index, event_ordinal)`
    tuple is greater, so a stale writer can never move the watermark backwards.
    File names compare bytewise (`COLLATE "C"`) to match in-process ordering
    whatever the database default collation is.
    """

    _DEFAULT_PIPELINE_NAME: Final[str] = "hr_domain_events"
    _SELECT_CHECKPOINT_SQL: Final[str] = (
        "SELECT log_file, log_offset, row_index, event_ordinal, updated_at_utc "
        "FROM transformation_checkpoint "
        "WHERE pipeline_name = :pipeline_name"
    )

    def __init__(self, engine: Engine, pipeline_name: str = _DEFAULT_PIPELINE_NAME):
        """Initialize checkpoint store.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.
            pipeline_name: Checkpoint row key.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when inputs are invalid.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        if not pipeline_name.strip():
            raise ValueError("pipeline_name must not be blank")

        self._engine = engine
        self._pipeline_name = pipeline_name.strip()

    def checkpoint_load(self) -> Checkpoint | None:
        """Return the persisted checkpoint, or None before the first write.

        Returns:
            Checkpoint | None: Persisted checkpoint.

        Raises:
            RuntimeError: Raised when the read fails.
        """

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(self._SELECT_CHECKPOINT_SQL),
                    {"pipeline_name": self._pipeline_name},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to load transformation checkpoint") from error

        if row is None:
            return None
        return Checkpoint(
            position=SourcePosition(
                log_file=str(row["log_file"]),
                log_offset=int(row["log_offset"]),
                row_index=int(row["row_index"]),
                event_ordinal=int(row["event_ordinal"]),
            ),
            updated_at_utc=row["updated_at_utc"],
        )

    def checkpoint_save(self, position: SourcePosition) -> Checkpoint:
        """Persist a new watermark without ever moving it backwards.

        Args:
            position: Watermark position.

        Returns:
            Checkpoint: Stored checkpoint after the write (may be the newer stored row).

        Raises:
            CheckpointWriteFailed: Raised when the write fails.
        """

        try:
            with self._engine.begin() as connection:
                connection.execute(
                    text(
                        "INSERT INTO transformation_checkpoint ("
                        "pipeline_name, log_file, log_offset, row_index, event_ordinal, updated_at_utc"
                        ") VALUES ("
                        ":pipeline_name, :log_file, :log_offset, :row_index, :event_ordinal, now()"
                        ") "
                        "ON CONFLICT (pipeline_name) DO UPDATE SET "
                        "log_file = EXCLUDED.log_file, "
                        "log_offset = EXCLUDED.log_offset, "
                        "row_index = EXCLUDED.row_index, "
                        "event_ordinal = EXCLUDED.event_ordinal, "
                        "updated_at_utc = EXCLUDED.updated_at_utc "
                        "WHERE (EXCLUDED.log_file COLLATE \"C\", EXCLUDED.log_offset, "
                        "EXCLUDED.row_index, EXCLUDED.event_ordinal) > "
                        "(transformation_checkpoint.log_file COLLATE \"C\", transformation_checkpoint.log_offset, "
                        "transformation_checkpoint.row_index, transformation_checkpoint.event_ordinal)"
                    ),
                    {
                        "pipeline_name": self._pipeline_name,
                        "log_file": position.log_file,
                        "log_offset": position.log_offset,
                        "row_index": position.row_index,
                        "event_ordinal": position.event_ordinal,
                    },
                )
                stored_row = connection.execute(
                    text(self._SELECT_CHECKPOINT_SQL),
                    {"pipeline_name": self._pipeline_name},
                ).mappings().one()
        except SQLAlchemyError as error:
            raise CheckpointWriteFailed(
                f"failed to persist checkpoint position={position.position_token()}"
            ) from error

        return Checkpoint(
            position=SourcePosition(
                log_file=str(stored_row["log_file"]),
                log_offset=int(stored_row["log_offset"]),
                row_index=int(stored_row["row_index"]),
                event_ordinal=int(stored_row["event_ordinal"]),
            ),
            updated_at_utc=stored_row["updated_at_utc"],
        )
