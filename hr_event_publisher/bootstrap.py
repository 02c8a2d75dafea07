"""Application bootstrap wiring for startup validation and dependency assembly."""

from dataclasses import dataclass

from fastapi import FastAPI

from hr_event_publisher.adapters import DebeziumJsonLinesReader, HttpBusTransport
from hr_event_publisher.api import create_api_application
from hr_event_publisher.config import AppSettings, config_configure_logging, config_load_settings
from hr_event_publisher.db import (
    SQLAlchemyCheckpointStore,
    SQLAlchemyDatabaseHealthService,
    SQLAlchemyDeadLetterService,
    SQLAlchemyDurableEventLogService,
    SQLAlchemyReferenceReadModel,
    db_create_engine,
)
from hr_event_publisher.detection import detection_build_default_registry
from hr_event_publisher.enrichment import EnrichmentService, ReadThroughReferenceCache
from hr_event_publisher.jobs import (
    PipelineCounters,
    RetryBackoffPolicy,
    TransformationEngine,
    TransformationJobOrchestrator,
    TransformationOrchestratorConfig,
)
from hr_event_publisher.publishing import IdempotentPublisher
from hr_event_publisher.validation import ValidationService


@dataclass(frozen=True)
class RuntimeComponents:
    """Wired runtime dependencies shared by API and CLI surfaces.

    Attributes:
        settings: Validated runtime settings.
        orchestrator: Transformation orchestrator.
        db_health_service: Event-store health service.
        dead_letter_sink: Dead-letter sink.
    """

    settings: AppSettings
    orchestrator: TransformationJobOrchestrator
    db_health_service: SQLAlchemyDatabaseHealthService
    dead_letter_sink: SQLAlchemyDeadLetterService


def bootstrap_create_components(settings: AppSettings | None = None) -> RuntimeComponents:
    """Assemble every pipeline dependency after validating configuration.

    Args:
        settings: Optional pre-loaded settings.

    Returns:
        RuntimeComponents: Wired runtime dependencies.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    resolved_settings = settings or config_load_settings()
    config_configure_logging(level=resolved_settings.log_level, json_enabled=resolved_settings.log_json)

    pool_size = resolved_settings.lane_count + 2
    engine = db_create_engine(database_url=resolved_settings.database_url, pool_size=pool_size)
    reference_database_url = resolved_settings.settings_reference_database_url()
    if reference_database_url == resolved_settings.database_url:
        reference_engine = engine
    else:
        reference_engine = db_create_engine(database_url=reference_database_url, pool_size=pool_size)

    counters = PipelineCounters()
    registry = detection_build_default_registry(fault_listener=counters.counters_record_detection_fault)
    reference_cache = ReadThroughReferenceCache(
        read_model=SQLAlchemyReferenceReadModel(engine=reference_engine),
        ttl_seconds=resolved_settings.reference_cache_ttl_seconds,
        max_entries=resolved_settings.reference_cache_max_entries,
    )
    dead_letter_sink = SQLAlchemyDeadLetterService(engine=engine)
    publisher = IdempotentPublisher(
        event_log=SQLAlchemyDurableEventLogService(engine=engine),
        bus_transport=HttpBusTransport(
            base_url=resolved_settings.bus_base_url,
            request_timeout_seconds=resolved_settings.bus_timeout_seconds,
        ),
    )
    transformation_engine = TransformationEngine(
        registry=registry,
        enrichment_service=EnrichmentService(reference_read_model=reference_cache),
        validation_service=ValidationService(),
        publisher=publisher,
        dead_letter_sink=dead_letter_sink,
        counters=counters,
        enrichment_retry_policy=RetryBackoffPolicy(
            backoff_base_seconds=resolved_settings.enrichment_backoff_base_seconds,
            max_backoff_seconds=resolved_settings.enrichment_backoff_max_seconds,
        ),
        publish_retry_policy=RetryBackoffPolicy(
            backoff_base_seconds=resolved_settings.publish_backoff_base_seconds,
            max_backoff_seconds=resolved_settings.publish_backoff_max_seconds,
        ),
        enrichment_max_retries=resolved_settings.enrichment_max_retries,
    )
    orchestrator = TransformationJobOrchestrator(
        reader=DebeziumJsonLinesReader(change_log_path=resolved_settings.change_log_path),
        checkpoint_store=SQLAlchemyCheckpointStore(engine=engine),
        engine=transformation_engine,
        counters=counters,
        config=TransformationOrchestratorConfig(
            lane_count=resolved_settings.lane_count,
            max_in_flight=resolved_settings.max_in_flight,
            checkpoint_batch_size=resolved_settings.checkpoint_batch_size,
        ),
    )
    return RuntimeComponents(
        settings=resolved_settings,
        orchestrator=orchestrator,
        db_health_service=SQLAlchemyDatabaseHealthService(engine=engine, reference_engine=reference_engine),
        dead_letter_sink=dead_letter_sink,
    )


def bootstrap_create_application() -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    components = bootstrap_create_components()
    return create_api_application(
        settings=components.settings,
        db_health_service=components.db_health_service,
        transformation_orchestrator=components.orchestrator,
        dead_letter_sink=components.dead_letter_sink,
    )


def bootstrap_create_transformation_orchestrator() -> TransformationJobOrchestrator:
    """Build transformation orchestrator for non-HTTP trigger surfaces.

    Returns:
        TransformationJobOrchestrator: Fully wired orchestrator instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    return bootstrap_create_components().orchestrator
