"""Health endpoint router composition for app, database and pipeline checks."""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from hr_event_publisher.db import DatabaseHealthPort
from hr_event_publisher.jobs import JobOrchestratorPort


def api_create_health_router(
    db_health_service: DatabaseHealthPort,
    transformation_orchestrator: JobOrchestratorPort | None = None,
) -> APIRouter:
    """Create health-check router with database connectivity and pipeline state.

    Args:
        db_health_service: DB-layer health service interface.
        transformation_orchestrator: Optional orchestrator whose run state is reported.

    Returns:
        APIRouter: Router exposing `/health` endpoint.

    Raises:
        ValueError: Raised when db_health_service is invalid.
    """

    if db_health_service is None:
        raise ValueError("db_health_service must not be None")

    router = APIRouter(tags=["health"])

    def _api_pipeline_summary() -> dict[str, Any] | None:
        if transformation_orchestrator is None:
            return None
        pipeline_status = transformation_orchestrator.job_status()
        return {
            "active": pipeline_status.get("active"),
            "last_status": pipeline_status.get("last_status"),
            "watermark": pipeline_status.get("watermark"),
        }

    @router.get("/health")
    def api_health_status() -> JSONResponse:
        """Return application, database and pipeline health state.

        Returns:
            JSONResponse: 200 when the event store is reachable, 503 otherwise.

        Raises:
            ConnectionError: Raised when database health check fails.
        """

        try:
            db_health = db_health_service.db_check_health()
            payload = {
                "status": "ok",
                "app": "up",
                "database": db_health.status,
                "detail": db_health.detail,
                "target": db_health_service.db_connection_label(),
                "pipeline": _api_pipeline_summary(),
            }
            return JSONResponse(content=payload, status_code=status.HTTP_200_OK)
        except ConnectionError as error:
            payload = {
                "status": "degraded",
                "app": "up",
                "database": "down",
                "detail": str(error),
                "target": db_health_service.db_connection_label(),
                "pipeline": _api_pipeline_summary(),
            }
            return JSONResponse(content=payload, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    return router
