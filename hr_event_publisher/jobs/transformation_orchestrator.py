"""Job-layer transformation orchestrator with lanes, backpressure and checkpointing."""

from __future__ import annotations

import logging
import threading
import traceback
from dataclasses import dataclass
from typing import Any

from hr_event_publisher.adapters import END_OF_STREAM, ChangeLogReaderPort
from hr_event_publisher.db import CheckpointStorePort
from hr_event_publisher.domain import (
    ChangeEvent,
    CheckpointWriteFailed,
    RunAlreadyActiveError,
    SourcePosition,
    domain_build_stage_event,
)

from .engine import TransformationEngine
from .interfaces import JobExecutionResult, JobOrchestratorPort
from .lanes import LaneWorkerPool
from .metrics import PipelineCounters
from .watermark import WatermarkTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformationOrchestratorConfig:
    """Configuration values for transformation run execution.

    Attributes:
        lane_count: Number of worker lanes.
        max_in_flight: Max change events admitted but not yet handled.
        checkpoint_batch_size: Watermark advance (in change events) that triggers a checkpoint write.
        intake_poll_seconds: Backpressure wait slice; checkpoints are flushed between slices.
    """

    lane_count: int = 4
    max_in_flight: int = 256
    checkpoint_batch_size: int = 100
    intake_poll_seconds: float = 0.5


@dataclass(frozen=True)
class _LaneTask:
    sequence: int
    change: ChangeEvent


class TransformationJobOrchestrator(JobOrchestratorPort):
    """Concrete job orchestrator for the change-to-event transformation run."""

    _TRANSFORM_JOB_NAME = "transform_run"

    def __init__(
        self,
        reader: ChangeLogReaderPort,
        checkpoint_store: CheckpointStorePort,
        engine: TransformationEngine,
        counters: PipelineCounters,
        config: TransformationOrchestratorConfig,
    ):
        """Initialize transformation orchestrator dependencies.

        Args:
            reader: Change-log reader.
            checkpoint_store: Watermark checkpoint store.
            engine: Per-change transformation engine.
            counters: Shared pipeline counters.
            config: Run configuration.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if reader is None:
            raise ValueError("reader must not be None")
        if checkpoint_store is None:
            raise ValueError("checkpoint_store must not be None")
        if engine is None:
            raise ValueError("engine must not be None")
        if counters is None:
            raise ValueError("counters must not be None")
        if config.lane_count < 1:
            raise ValueError("config.lane_count must be >= 1")
        if config.max_in_flight < 1:
            raise ValueError("config.max_in_flight must be >= 1")
        if config.checkpoint_batch_size < 1:
            raise ValueError("config.checkpoint_batch_size must be >= 1")
        if config.intake_poll_seconds <= 0:
            raise ValueError("config.intake_poll_seconds must be > 0")

        self._reader = reader
        self._checkpoint_store = checkpoint_store
        self._engine = engine
        self._counters = counters
        self._config = config

        self._run_lock = threading.Lock()
        self._run_active = False
        self._stop_event = threading.Event()
        self._force_requested = False
        self._lane_pool: LaneWorkerPool[_LaneTask] | None = None
        self._watermark: WatermarkTracker | None = None
        self._last_saved_position: SourcePosition | None = None
        self._last_result: JobExecutionResult | None = None

    def job_supported_names(self) -> tuple[str, ...]:
        """Return supported job names.

        Returns:
            tuple[str, ...]: Supported job names.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return (self._TRANSFORM_JOB_NAME,)

    def job_execute(self, job_name: str) -> JobExecutionResult:
        """Run the transformation until end of stream or shutdown.

        Args:
            job_name: Name of job to execute.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            ValueError: Raised when job name is unsupported.
            RunAlreadyActiveError: Raised when another run is active.
        """

        normalized_job_name = job_name.strip()
        if normalized_job_name != self._TRANSFORM_JOB_NAME:
            raise ValueError(f"unsupported job_name={normalized_job_name}")

        with self._run_lock:
            if self._run_active:
                raise RunAlreadyActiveError("transformation run already active")
            self._run_active = True
            self._stop_event.clear()
            self._force_requested = False
            self._engine.engine_reset_abort()

        try:
            result = self._job_run(normalized_job_name)
            self._last_result = result
            return result
        finally:
            with self._run_lock:
                self._run_active = False
                self._lane_pool = None

    def job_request_shutdown(self, force: bool = False) -> None:
        """Request the active run to stop.

        A graceful request halts intake and drains queued change events. A
        forced request also aborts retry waits and drops queued change events,
        which stay behind the watermark and are replayed on the next run.

        Args:
            force: Abort in-flight retries instead of draining.

        Returns:
            None: Shutdown flags are set as side effect.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        self._stop_event.set()
        if force:
            self._force_requested = True
            self._engine.engine_abort()
            lane_pool = self._lane_pool
            if lane_pool is not None:
                lane_pool.lane_abort()
        logger.info("shutdown requested force=%s", force)

    def job_status(self) -> dict[str, Any]:
        """Return a JSON-compatible snapshot of run state and counters."""

        watermark = self._watermark
        watermark_position = watermark.watermark_position() if watermark is not None else None
        last_result = self._last_result
        return {
            "job_name": self._TRANSFORM_JOB_NAME,
            "active": self._run_active,
            "stop_requested": self._stop_event.is_set(),
            "watermark": watermark_position.position_token() if watermark_position is not None else None,
            "pending_changes": watermark.watermark_pending_count() if watermark is not None else 0,
            "last_checkpoint": (
                self._last_saved_position.position_token() if self._last_saved_position is not None else None
            ),
            "last_status": last_result.status if last_result is not None else None,
            "counters": self._counters.counters_snapshot(),
        }

    def _job_run(self, normalized_job_name: str) -> JobExecutionResult:
        """Execute one run with a deterministic stage timeline.

        Args:
            normalized_job_name: Validated job name.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            RuntimeError: This helper reports failures through the result instead.
        """

        timeline: list[dict[str, object]] = [domain_build_stage_event(stage="run", status="started")]

        try:
            checkpoint = self._checkpoint_store.checkpoint_load()
            start_position = checkpoint.position if checkpoint is not None else None
            self._reader.reader_seek(start_position)
        except (RuntimeError, ConnectionError) as error:
            return self._job_failed_result(normalized_job_name, timeline, error)

        self._last_saved_position = start_position
        watermark = WatermarkTracker(start_position)
        self._watermark = watermark
        in_flight = threading.BoundedSemaphore(self._config.max_in_flight)

        def _job_handle_task(task: _LaneTask) -> None:
            try:
                result = self._engine.engine_process_change(task.change)
                if result.resolved:
                    watermark.watermark_resolve(task.sequence)
                    self._counters.counters_increment("changes_resolved")
            finally:
                in_flight.release()

        lane_pool: LaneWorkerPool[_LaneTask] = LaneWorkerPool(self._config.lane_count, _job_handle_task)
        self._lane_pool = lane_pool
        lane_pool.lane_start()
        timeline.append(
            domain_build_stage_event(
                stage="intake",
                status="started",
                details={
                    "start_position": start_position.position_token() if start_position is not None else None,
                    "reader": self._reader.reader_source_name(),
                    "lane_count": self._config.lane_count,
                },
            )
        )

        flushed_count = 0
        failure: BaseException | None = None
        checkpoint_failed = False
        end_of_stream = False
        try:
            while not self._stop_event.is_set():
                lane_failure = lane_pool.lane_failure()
                if lane_failure is not None:
                    raise RuntimeError(f"lane handler failed: {lane_failure}") from lane_failure

                if watermark.watermark_advanced_count() - flushed_count >= self._config.checkpoint_batch_size:
                    flushed_count = self._job_flush_checkpoint(watermark)

                if not in_flight.acquire(timeout=self._config.intake_poll_seconds):
                    if watermark.watermark_advanced_count() > flushed_count:
                        flushed_count = self._job_flush_checkpoint(watermark)
                    continue

                change = self._reader.reader_next()
                if change is END_OF_STREAM:
                    in_flight.release()
                    end_of_stream = True
                    break

                sequence = watermark.watermark_register(change.source_position)
                self._counters.counters_increment("changes_received")
                lane_pool.lane_submit(self._engine.engine_lane_key(change), _LaneTask(sequence=sequence, change=change))
        except CheckpointWriteFailed as error:
            checkpoint_failed = True
            failure = error
        except (ValueError, ConnectionError, RuntimeError) as error:
            failure = error

        drain = failure is None and not self._force_requested
        if not drain:
            self._engine.engine_abort()
        lane_pool.lane_stop(drain=drain)
        if failure is None and lane_pool.lane_failure() is not None:
            lane_failure = lane_pool.lane_failure()
            failure = RuntimeError(f"lane handler failed: {lane_failure}")

        timeline.append(
            domain_build_stage_event(
                stage="intake",
                status="completed",
                details={
                    "end_of_stream": end_of_stream,
                    "forced": self._force_requested,
                    "pending_changes": watermark.watermark_pending_count(),
                },
            )
        )

        if not checkpoint_failed:
            try:
                self._job_flush_checkpoint(watermark, final=True)
            except CheckpointWriteFailed as error:
                failure = failure or error

        if failure is not None:
            return self._job_failed_result(normalized_job_name, timeline, failure)

        timeline.append(
            domain_build_stage_event(
                stage="run",
                status="success",
                details={"counters": self._counters.counters_snapshot()},
            )
        )
        return JobExecutionResult(job_name=normalized_job_name, status="success", diagnostics=timeline)

    def _job_flush_checkpoint(self, watermark: WatermarkTracker, final: bool = False) -> int:
        """Persist the current watermark.

        Args:
            watermark: Active watermark tracker.
            final: Write even when the position has not moved since the last write.

        Returns:
            int: Watermark advance count covered by this write.

        Raises:
            CheckpointWriteFailed: Raised when the checkpoint store write fails.
        """

        advanced_count = watermark.watermark_advanced_count()
        position = watermark.watermark_position()
        if position is None:
            return advanced_count
        if not final and position == self._last_saved_position:
            return advanced_count

        stored_checkpoint = self._checkpoint_store.checkpoint_save(position)
        self._last_saved_position = stored_checkpoint.position
        self._counters.counters_increment("checkpoint_writes")
        logger.info("checkpoint saved position=%s final=%s", stored_checkpoint.position.position_token(), final)
        return advanced_count

    def _job_failed_result(
        self,
        normalized_job_name: str,
        timeline: list[dict[str, object]],
        error: BaseException,
    ) -> JobExecutionResult:
        error_code = getattr(error, "error_code", "TRANSFORM_RUN_FAILED")
        logger.error("transformation run failed error_code=%s: %s", error_code, error)
        timeline.append(
            domain_build_stage_event(
                stage="run",
                status="failed",
                details={
                    "error_code": error_code,
                    "error_type": type(error).__name__,
                    "error_message": str(error),
                    "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
                },
            )
        )
        return JobExecutionResult(job_name=normalized_job_name, status="failed", diagnostics=timeline)
