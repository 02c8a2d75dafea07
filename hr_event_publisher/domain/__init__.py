"""Domain models used across application layer boundaries."""

from .errors import (
    CheckpointWriteFailed,
    DetectionFault,
    EnrichmentUnavailable,
    EventPipelineError,
    PublishFailed,
    RunAlreadyActiveError,
    ValidationFailed,
)
from .events import ChangeEvent, ChangeOperation, Checkpoint, DomainEvent, EventMetadata, SourcePosition
from .identity import domain_derive_correlation_id, domain_derive_event_id
from .health import HealthStatus
from .timeline import domain_build_stage_event

__all__ = [
    "HealthStatus",
    "ChangeEvent",
    "ChangeOperation",
    "Checkpoint",
    "DomainEvent",
    "EventMetadata",
    "SourcePosition",
    "EventPipelineError",
    "DetectionFault",
    "EnrichmentUnavailable",
    "ValidationFailed",
    "PublishFailed",
    "CheckpointWriteFailed",
    "RunAlreadyActiveError",
    "domain_build_stage_event",
    "domain_derive_event_id",
    "domain_derive_correlation_id",
]
