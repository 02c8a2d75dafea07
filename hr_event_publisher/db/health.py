"""Connectivity checks for the event store and the HR reference store."""

from typing import Final

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from hr_event_publisher.domain import HealthStatus

from .interfaces import DatabaseHealthPort


class SQLAlchemyDatabaseHealthService(DatabaseHealthPort):
    """Check that the event-store schema is migrated and the reference store answers.

    When no separate reference engine is given, the event-store engine serves
    both roles and is probed once.
    """

    _EVENT_STORE_TABLES: Final[tuple[str, ...]] = (
        "domain_event_log",
        "dead_letter_event",
        "transformation_checkpoint",
    )

    def __init__(self, engine: Engine, reference_engine: Engine | None = None):
        """Initialize database health service.

        Args:
            engine: Event-store engine.
            reference_engine: Optional reference-store engine.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine
        self._reference_engine = reference_engine if reference_engine is not engine else None

    def db_connection_label(self) -> str:
        """Return the event-store URL, with the reference URL when it differs.

        Returns:
            str: Password-masked engine URL string(s).

        Raises:
            RuntimeError: Raised if URL rendering fails.
        """

        event_store_label = self._engine.url.render_as_string(hide_password=True)
        if self._reference_engine is None:
            return event_store_label
        reference_label = self._reference_engine.url.render_as_string(hide_password=True)
        return f"{event_store_label} reference={reference_label}"

    def db_check_health(self) -> HealthStatus:
        """Verify event-store tables exist and the reference store is reachable.

        Returns:
            HealthStatus: Health payload with status and diagnostic detail.

        Raises:
            ConnectionError: Raised when either store cannot be queried or tables are missing.
        """

        try:
            with self._engine.connect() as connection:
                missing_tables = [
                    table_name
                    for table_name in self._EVENT_STORE_TABLES
                    if connection.execute(
                        text("SELECT to_regclass(:table_name)"),
                        {"table_name": table_name},
                    ).scalar()
                    is None
                ]
        except SQLAlchemyError as error:
            raise ConnectionError("event store connectivity check failed") from error
        if missing_tables:
            raise ConnectionError(f"event store schema not migrated; missing tables: {', '.join(missing_tables)}")

        if self._reference_engine is None:
            return HealthStatus(status="ok", detail="event store connectivity and schema verified")

        try:
            with self._reference_engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as error:
            raise ConnectionError("reference store connectivity check failed") from error
        return HealthStatus(status="ok", detail="event store and reference store connectivity verified")
