"""Pipeline API router composition for run trigger, status and dead-letter triage."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from hr_event_publisher.config import AppSettings
from hr_event_publisher.db import DeadLetterRecord, DeadLetterSinkPort
from hr_event_publisher.domain import RunAlreadyActiveError
from hr_event_publisher.jobs import JobOrchestratorPort


def api_serialize_dead_letter_record(record: DeadLetterRecord) -> dict[str, Any]:
    """Serialize one dead-letter record into a JSON-compatible payload.

    Args:
        record: Dead-letter record.

    Returns:
        dict[str, Any]: Response payload.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    entry = record.entry
    return {
        "dead_letter_id": str(record.dead_letter_id),
        "recorded_at_utc": record.recorded_at_utc.isoformat() if record.recorded_at_utc is not None else None,
        "failure_kind": entry.failure_kind,
        "reason": entry.reason,
        "detector_name": entry.detector_name,
        "event_id": str(entry.event_id),
        "event_type": entry.event_type,
        "attempt_count": entry.attempt_count,
        "candidate": entry.candidate,
        "change_event": entry.change_event,
        "diagnostics": entry.diagnostics,
    }


def api_create_pipeline_router(
    settings: AppSettings,
    transformation_orchestrator: JobOrchestratorPort,
    dead_letter_sink: DeadLetterSinkPort,
) -> APIRouter:
    """Create pipeline router with trigger, status and dead-letter endpoints.

    Args:
        settings: Runtime settings used for pagination defaults.
        transformation_orchestrator: Job orchestrator for transformation runs.
        dead_letter_sink: DB-layer dead-letter sink.

    Returns:
        APIRouter: Router exposing pipeline APIs.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if transformation_orchestrator is None:
        raise ValueError("transformation_orchestrator must not be None")
    if dead_letter_sink is None:
        raise ValueError("dead_letter_sink must not be None")

    router = APIRouter(prefix="/pipeline", tags=["pipeline"])

    @router.post("/run")
    def api_pipeline_run_trigger() -> JSONResponse:
        """Run one transformation pass over the change log.

        Returns:
            JSONResponse: Trigger result payload.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        try:
            execution_result = transformation_orchestrator.job_execute(job_name="transform_run")
        except RunAlreadyActiveError:
            payload = {
                "status": "error",
                "message": "run already active",
            }
            return JSONResponse(content=payload, status_code=status.HTTP_409_CONFLICT)

        payload = {
            "job_name": execution_result.job_name,
            "status": execution_result.status,
            "diagnostics": execution_result.diagnostics,
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/status")
    def api_pipeline_status() -> JSONResponse:
        """Return run state, watermark and pipeline counters."""

        return JSONResponse(content=transformation_orchestrator.job_status(), status_code=status.HTTP_200_OK)

    @router.get("/dead-letters")
    def api_pipeline_dead_letter_list(
        limit: int = Query(default=settings.api_default_limit, ge=1),
        offset: int = Query(default=0, ge=0),
    ) -> JSONResponse:
        """Return dead-lettered candidates, most recent first.

        Args:
            limit: Max rows to return.
            offset: Rows to skip.

        Returns:
            JSONResponse: Dead-letter list payload.

        Raises:
            RuntimeError: Raised when repository read fails.
        """

        applied_limit = min(limit, settings.api_max_limit)
        dead_letter_rows = dead_letter_sink.dead_letter_list(limit=applied_limit, offset=offset)
        payload = {
            "items": [api_serialize_dead_letter_record(record) for record in dead_letter_rows],
            "page": {
                "limit": limit,
                "applied_limit": applied_limit,
                "offset": offset,
                "returned": len(dead_letter_rows),
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router
