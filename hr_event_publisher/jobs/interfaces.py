"""Typed interfaces for job-layer orchestration responsibilities."""

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class JobExecutionResult:
    """Result contract for long-running workflow execution.

    Attributes:
        job_name: Job identifier.
        status: Final execution state (`success` or `failed`).
        diagnostics: Run-level stage timeline.
    """

    job_name: str
    status: str
    diagnostics: list[dict[str, object]] = field(default_factory=list)


class JobOrchestratorPort(Protocol):
    """Port definition for orchestrating transformation jobs."""

    def job_supported_names(self) -> tuple[str, ...]:
        """Return the set of workflow names this orchestrator can execute.

        Returns:
            tuple[str, ...]: Deterministic list of supported job names.

        Raises:
            RuntimeError: Raised when supported job metadata is unavailable.
        """

    def job_execute(self, job_name: str) -> JobExecutionResult:
        """Execute one named workflow in the job layer.

        Args:
            job_name: Workflow name.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            RuntimeError: Raised when job execution fails.
        """

    def job_request_shutdown(self, force: bool = False) -> None:
        """Ask the active workflow to stop.

        Args:
            force: Abort in-flight retries instead of draining.

        Returns:
            None: Shutdown flags are set as side effect.

        Raises:
            RuntimeError: Raised when the request cannot be delivered.
        """

    def job_status(self) -> dict[str, object]:
        """Return a JSON-compatible snapshot of workflow state.

        Returns:
            dict[str, object]: Status payload.

        Raises:
            RuntimeError: Raised when status cannot be collected.
        """
