"""Transformation engine driving candidates from detection to commit or dead letter."""
# pylint: disable=too-many-arguments

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from hr_event_publisher.db.interfaces import DeadLetterEntry, DeadLetterSinkPort
from hr_event_publisher.detection import DetectorRegistry
from hr_event_publisher.domain import (
    ChangeEvent,
    DomainEvent,
    EnrichmentUnavailable,
    ValidationFailed,
    domain_build_stage_event,
)
from hr_event_publisher.enrichment import EnrichmentService
from hr_event_publisher.publishing import EventPublisherPort, PublishStatus, publishing_event_envelope
from hr_event_publisher.validation import ValidationService

from .metrics import PipelineCounters
from .retry import RetryBackoffPolicy

logger = logging.getLogger(__name__)

ENRICHMENT_EXHAUSTED = "enrichment_exhausted"
VALIDATION_REJECTED = "validation_rejected"


class CandidateState(str, Enum):
    """Terminal state of one candidate within one processing attempt."""

    COMMITTED = "committed"
    DEAD_LETTERED = "dead_lettered"
    ABORTED = "aborted"


@dataclass(frozen=True)
class CandidateResult:
    """Result contract for one candidate.

    Attributes:
        event_id: Candidate idempotency key.
        event_type: Candidate event type.
        detector_name: Rule that produced the candidate.
        state: Terminal state.
        publish_status: Final publish outcome, when publishing was reached.
        attempt_count: Enrichment plus publish attempts made.
        reason: Dead-letter or abort reason.
        timeline: Stage timeline of the candidate.
    """

    event_id: str
    event_type: str
    detector_name: str
    state: CandidateState
    publish_status: PublishStatus | None = None
    attempt_count: int = 0
    reason: str | None = None
    timeline: list[dict[str, object]] = field(default_factory=list)


@dataclass(frozen=True)
class ChangeProcessingResult:
    """Result contract for one change event.

    Attributes:
        source_position: Position token of the change event.
        candidates: Per-candidate results in detection order.
        resolved: True once every candidate is committed or dead-lettered.
        timeline: Change-level stage timeline.
    """

    source_position: str
    candidates: tuple[CandidateResult, ...]
    resolved: bool
    timeline: list[dict[str, object]] = field(default_factory=list)


class TransformationEngine:
    """Per-change state machine: detect, enrich, validate, publish.

    Each candidate reaches `committed` or `dead_lettered` independently, so one
    candidate failing never blocks its siblings from the same change event.
    Retry waits stop early once `engine_abort` is called; the affected change
    is then reported unresolved and stays behind the watermark.
    """

    def __init__(
        self,
        registry: DetectorRegistry,
        enrichment_service: EnrichmentService,
        validation_service: ValidationService,
        publisher: EventPublisherPort,
        dead_letter_sink: DeadLetterSinkPort,
        counters: PipelineCounters,
        enrichment_retry_policy: RetryBackoffPolicy,
        publish_retry_policy: RetryBackoffPolicy,
        enrichment_max_retries: int = 3,
        sleep_function: Callable[[float], None] | None = None,
    ):
        """Initialize engine dependencies.

        Args:
            registry: Detector registry.
            enrichment_service: Reference enrichment service.
            validation_service: Event validation service.
            publisher: Idempotent publisher.
            dead_letter_sink: Dead-letter sink.
            counters: Shared pipeline counters.
            enrichment_retry_policy: Backoff between enrichment attempts.
            publish_retry_policy: Backoff between publish attempts.
            enrichment_max_retries: Retries after the first enrichment attempt.
            sleep_function: Optional sleep override; defaults to an abortable wait.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        for dependency, dependency_name in (
            (registry, "registry"),
            (enrichment_service, "enrichment_service"),
            (validation_service, "validation_service"),
            (publisher, "publisher"),
            (dead_letter_sink, "dead_letter_sink"),
            (counters, "counters"),
            (enrichment_retry_policy, "enrichment_retry_policy"),
            (publish_retry_policy, "publish_retry_policy"),
        ):
            if dependency is None:
                raise ValueError(f"{dependency_name} must not be None")
        if enrichment_max_retries < 0:
            raise ValueError("enrichment_max_retries must be >= 0")

        self._registry = registry
        self._enrichment_service = enrichment_service
        self._validation_service = validation_service
        self._publisher = publisher
        self._dead_letter_sink = dead_letter_sink
        self._counters = counters
        self._enrichment_retry_policy = enrichment_retry_policy
        self._publish_retry_policy = publish_retry_policy
        self._enrichment_max_retries = enrichment_max_retries
        self._sleep_function = sleep_function
        self._abort_event = threading.Event()

    def engine_abort(self) -> None:
        """Interrupt retry waits in every lane."""

        self._abort_event.set()

    def engine_reset_abort(self) -> None:
        self._abort_event.clear()

    def engine_lane_key(self, change: ChangeEvent) -> str:
        """Return the lane routing key of one change event.

        Args:
            change: Change event.

        Returns:
            str: Aggregate lane key, `<table>:<row key>` for unrouted tables, or the table alone when no key can be built.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        try:
            return self._registry.detection_lane_key(change)
        except ValueError:
            logger.warning(
                "row key missing table=%s position=%s; routing by table",
                change.table,
                change.source_position.position_token(),
            )
            return change.table

    def engine_process_change(self, change: ChangeEvent) -> ChangeProcessingResult:
        """Drive every candidate of one change event to a terminal state.

        Args:
            change: Change event.

        Returns:
            ChangeProcessingResult: Per-candidate outcomes and resolution flag.

        Raises:
            RuntimeError: Raised when enrichment returns no event for a candidate.
        """

        position_token = change.source_position.position_token()
        timeline: list[dict[str, object]] = [
            domain_build_stage_event(
                stage="received",
                status="completed",
                details={"table": change.table, "operation": change.operation.value, "position": position_token},
            ),
            domain_build_stage_event(stage="detecting", status="started"),
        ]

        candidate_results: list[CandidateResult] = []
        for candidate in self._registry.detection_detect(change):
            self._counters.counters_increment("candidates_detected")
            candidate_result = self._engine_process_candidate(change, candidate)
            candidate_results.append(candidate_result)
            if candidate_result.state == CandidateState.ABORTED:
                break

        resolved = all(result.state != CandidateState.ABORTED for result in candidate_results)
        timeline.append(
            domain_build_stage_event(
                stage="detecting",
                status="completed" if resolved else "aborted",
                details={
                    "candidate_count": len(candidate_results),
                    "states": [result.state.value for result in candidate_results],
                },
            )
        )
        return ChangeProcessingResult(
            source_position=position_token,
            candidates=tuple(candidate_results),
            resolved=resolved,
            timeline=timeline,
        )

    def _engine_process_candidate(self, change: ChangeEvent, candidate: DomainEvent) -> CandidateResult:
        """Enrich, validate and publish one candidate.

        Args:
            change: Causing change event.
            candidate: Candidate event.

        Returns:
            CandidateResult: Terminal state of the candidate.

        Raises:
            RuntimeError: Raised from dead-letter persistence failures.
        """

        timeline: list[dict[str, object]] = []
        attempt_count = 0

        enriched: DomainEvent | None = None
        for retry_index in range(self._enrichment_max_retries + 1):
            attempt_count += 1
            timeline.append(
                domain_build_stage_event(stage="enriching", status="started", details={"attempt": attempt_count})
            )
            try:
                enriched = self._enrichment_service.enrichment_enrich(candidate)
            except EnrichmentUnavailable as error:
                if retry_index >= self._enrichment_max_retries:
                    timeline.append(
                        domain_build_stage_event(stage="enriching", status="failed", details={"reason": error.reason})
                    )
                    return self._engine_dead_letter(
                        change=change,
                        candidate=candidate,
                        failure_kind=ENRICHMENT_EXHAUSTED,
                        reason=error.reason,
                        attempt_count=attempt_count,
                        timeline=timeline,
                    )
                wait_seconds = self._enrichment_retry_policy.retry_wait_seconds(retry_index)
                timeline.append(
                    domain_build_stage_event(
                        stage="enriching",
                        status="retrying",
                        details={"reason": error.reason, "retry_after_seconds": round(wait_seconds, 3)},
                    )
                )
                self._counters.counters_increment("enrichment_retries")
                logger.warning(
                    "enrichment unavailable event_id=%s attempt=%s retry_in=%.3fs: %s",
                    candidate.event_id,
                    attempt_count,
                    wait_seconds,
                    error.reason,
                )
                if not self._engine_wait(wait_seconds):
                    return self._engine_aborted(candidate, attempt_count, "aborted during enrichment retry", timeline)
                continue
            timeline.append(domain_build_stage_event(stage="enriching", status="completed"))
            break

        if enriched is None:
            raise RuntimeError(f"enrichment produced no event event_id={candidate.event_id}")

        timeline.append(domain_build_stage_event(stage="validating", status="started"))
        try:
            self._validation_service.validation_validate(enriched)
        except ValidationFailed as error:
            timeline.append(domain_build_stage_event(stage="validating", status="failed", details={"reason": error.reason}))
            return self._engine_dead_letter(
                change=change,
                candidate=enriched,
                failure_kind=VALIDATION_REJECTED,
                reason=error.reason,
                attempt_count=attempt_count,
                timeline=timeline,
            )
        timeline.append(domain_build_stage_event(stage="validating", status="completed"))

        publish_retry_index = 0
        while True:
            attempt_count += 1
            timeline.append(domain_build_stage_event(stage="publishing", status="started"))
            outcome = self._publisher.publish(enriched)
            if outcome.outcome_is_terminal_success():
                counter_name = (
                    "events_published" if outcome.status == PublishStatus.PUBLISHED else "duplicates_ignored"
                )
                self._counters.counters_increment(counter_name)
                timeline.append(
                    domain_build_stage_event(stage="committed", status="completed", details={"outcome": outcome.status.value})
                )
                return CandidateResult(
                    event_id=str(enriched.event_id),
                    event_type=enriched.event_type,
                    detector_name=enriched.detector_name,
                    state=CandidateState.COMMITTED,
                    publish_status=outcome.status,
                    attempt_count=attempt_count,
                    timeline=timeline,
                )

            wait_seconds = self._publish_retry_policy.retry_wait_seconds(publish_retry_index)
            publish_retry_index += 1
            self._counters.counters_increment("publish_retries")
            timeline.append(
                domain_build_stage_event(
                    stage="publishing",
                    status="retrying",
                    details={"reason": outcome.reason, "retry_after_seconds": round(wait_seconds, 3)},
                )
            )
            if not self._engine_wait(wait_seconds):
                return self._engine_aborted(enriched, attempt_count, f"aborted during publish retry: {outcome.reason}", timeline)

    def _engine_dead_letter(
        self,
        change: ChangeEvent,
        candidate: DomainEvent,
        failure_kind: str,
        reason: str,
        attempt_count: int,
        timeline: list[dict[str, object]],
    ) -> CandidateResult:
        """Record one candidate in the dead-letter sink, retrying sink failures.

        Args:
            change: Causing change event.
            candidate: Candidate that cannot complete.
            failure_kind: `enrichment_exhausted` or `validation_rejected`.
            reason: Failure reason.
            attempt_count: Attempts made so far.
            timeline: Candidate stage timeline.

        Returns:
            CandidateResult: Dead-lettered result, or aborted when shutdown is forced first.

        Raises:
            RuntimeError: This helper reports sink failures by retrying instead.
        """

        timeline.append(
            domain_build_stage_event(stage="dead_lettered", status="started", details={"failure_kind": failure_kind})
        )
        entry = DeadLetterEntry(
            failure_kind=failure_kind,
            reason=reason,
            detector_name=candidate.detector_name,
            event_id=candidate.event_id,
            event_type=candidate.event_type,
            candidate=self._engine_describe_candidate(candidate),
            change_event=change.change_describe(),
            attempt_count=attempt_count,
            diagnostics=list(timeline),
        )

        sink_retry_index = 0
        while True:
            try:
                self._dead_letter_sink.dead_letter_record(entry)
                break
            except RuntimeError as error:
                wait_seconds = self._publish_retry_policy.retry_wait_seconds(sink_retry_index)
                sink_retry_index += 1
                logger.warning("dead-letter write failed event_id=%s retry_in=%.3fs: %s", candidate.event_id, wait_seconds, error)
                if not self._engine_wait(wait_seconds):
                    return self._engine_aborted(candidate, attempt_count, f"aborted during dead-letter write: {error}", timeline)

        timeline.append(domain_build_stage_event(stage="dead_lettered", status="completed"))
        self._counters.counters_increment("dead_lettered")
        logger.error(
            "candidate dead-lettered event_id=%s event_type=%s kind=%s reason=%s",
            candidate.event_id,
            candidate.event_type,
            failure_kind,
            reason,
        )
        return CandidateResult(
            event_id=str(candidate.event_id),
            event_type=candidate.event_type,
            detector_name=candidate.detector_name,
            state=CandidateState.DEAD_LETTERED,
            attempt_count=attempt_count,
            reason=reason,
            timeline=timeline,
        )

    def _engine_aborted(
        self,
        candidate: DomainEvent,
        attempt_count: int,
        reason: str,
        timeline: list[dict[str, object]],
    ) -> CandidateResult:
        logger.warning("candidate left unresolved event_id=%s: %s", candidate.event_id, reason)
        return CandidateResult(
            event_id=str(candidate.event_id),
            event_type=candidate.event_type,
            detector_name=candidate.detector_name,
            state=CandidateState.ABORTED,
            attempt_count=attempt_count,
            reason=reason,
            timeline=timeline,
        )

    def _engine_describe_candidate(self, candidate: DomainEvent) -> dict[str, Any]:
        try:
            return publishing_event_envelope(candidate)
        except TypeError:
            return {
                "eventId": str(candidate.event_id),
                "eventType": candidate.event_type,
                "aggregateId": candidate.aggregate_id,
                "payload": {key: repr(value) for key, value in candidate.payload.items()},
            }

    def _engine_wait(self, wait_seconds: float) -> bool:
        """Wait before a retry.

        Args:
            wait_seconds: Delay in seconds.

        Returns:
            bool: False when shutdown was forced before or during the wait.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if self._abort_event.is_set():
            return False
        if self._sleep_function is not None:
            self._sleep_function(wait_seconds)
            return not self._abort_event.is_set()
        return not self._abort_event.wait(wait_seconds)
