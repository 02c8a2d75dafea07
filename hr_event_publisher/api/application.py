"""FastAPI application factory for the event publisher runtime."""

from fastapi import FastAPI

from hr_event_publisher.config import AppSettings
from hr_event_publisher.db import DatabaseHealthPort, DeadLetterSinkPort
from hr_event_publisher.jobs import JobOrchestratorPort

from .routers import api_create_health_router, api_create_pipeline_router


def create_api_application(
    settings: AppSettings,
    db_health_service: DatabaseHealthPort,
    transformation_orchestrator: JobOrchestratorPort,
    dead_letter_sink: DeadLetterSinkPort,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        db_health_service: Database health service used by health endpoints.
        transformation_orchestrator: Job orchestrator for transformation runs.
        dead_letter_sink: Dead-letter sink for triage endpoints.

    Returns:
        FastAPI: Framework application instance.

    Raises:
        RuntimeError: Raised if application initialization fails.
    """
    application = FastAPI(title="HR Event Publisher")

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        """Return a minimal service descriptor.

        Returns:
            dict[str, str]: Service name, status and environment.

        Raises:
            RuntimeError: Raised if route handler cannot produce a response.
        """

        return {
            "service": "hr-event-publisher",
            "status": "ready",
            "environment": settings.environment_name,
        }

    application.include_router(
        api_create_health_router(
            db_health_service=db_health_service,
            transformation_orchestrator=transformation_orchestrator,
        )
    )
    application.include_router(
        api_create_pipeline_router(
            settings=settings,
            transformation_orchestrator=transformation_orchestrator,
            dead_letter_sink=dead_letter_sink,
        )
    )

    return application
