"""Database layer package for all SQL and persistence boundaries."""

from .checkpoint_store import SQLAlchemyCheckpointStore
from .dead_letter import SQLAlchemyDeadLetterService
from .event_log import SQLAlchemyDurableEventLogService
from .health import SQLAlchemyDatabaseHealthService
from .interfaces import (
	CheckpointStorePort,
	DatabaseHealthPort,
	DeadLetterEntry,
	DeadLetterRecord,
	DeadLetterSinkPort,
	DurableEventLogPort,
	EventLogInsertResult,
	EventLogRecord,
)
from .reference_read_model import SQLAlchemyReferenceReadModel
from .session import db_create_engine

__all__ = [
	"CheckpointStorePort",
	"DatabaseHealthPort",
	"DeadLetterEntry",
	"DeadLetterRecord",
	"DeadLetterSinkPort",
	"DurableEventLogPort",
	"EventLogInsertResult",
	"EventLogRecord",
	"SQLAlchemyCheckpointStore",
	"SQLAlchemyDatabaseHealthService",
	"SQLAlchemyDeadLetterService",
	"SQLAlchemyDurableEventLogService",
	"SQLAlchemyReferenceReadModel",
	"db_create_engine",
]
