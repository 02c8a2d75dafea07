"""Publishing layer package for durable, idempotent event delivery."""

from .interfaces import EventPublisherPort, PublishOutcome, PublishStatus
from .publisher import IdempotentPublisher
from .serialization import publishing_build_log_record, publishing_event_envelope, publishing_serialize_event

__all__ = [
    "EventPublisherPort",
    "IdempotentPublisher",
    "PublishOutcome",
    "PublishStatus",
    "publishing_build_log_record",
    "publishing_event_envelope",
    "publishing_serialize_event",
]
