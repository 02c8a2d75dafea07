"""Project-native typed exceptions for the change-to-event pipeline."""

from __future__ import annotations


class EventPipelineError(Exception):
    """Base exception for pipeline failures.

    Attributes:
        error_code: Deterministic error code used in diagnostics.
    """

    error_code = "PIPELINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.reason = message


class DetectionFault(EventPipelineError, RuntimeError):
    """Detector rule raised while evaluating one change event.

    Attributes:
        detector_name: Name of the failing rule.
    """

    error_code = "DETECTION_FAULT"

    def __init__(self, message: str, detector_name: str):
        super().__init__(message)
        self.detector_name = detector_name


class EnrichmentUnavailable(EventPipelineError, ConnectionError):
    """Reference store could not be reached; the candidate is retryable."""

    error_code = "ENRICHMENT_UNAVAILABLE"


class ValidationFailed(EventPipelineError, ValueError):
    """Enriched event violates a structural or business invariant; terminal."""

    error_code = "VALIDATION_FAILED"


class PublishFailed(EventPipelineError, ConnectionError):
    """Durable write or bus send failed; safe to retry."""

    error_code = "PUBLISH_FAILED"


class CheckpointWriteFailed(EventPipelineError, RuntimeError):
    """Watermark could not be persisted; the process must restart."""

    error_code = "CHECKPOINT_WRITE_FAILED"


class RunAlreadyActiveError(RuntimeError):
    """Raised when a transformation run is triggered while another one is active."""
