"""Validation service enforcing structural and business invariants on enriched events."""

from __future__ import annotations

from typing import Iterable

from hr_event_publisher.domain import DomainEvent, ValidationFailed
from hr_event_publisher.domain.values import domain_value_to_decimal, domain_value_values_differ

from .schemas import DEFAULT_EVENT_SCHEMAS, EventSchema


class ValidationService:
    """Accept or reject enriched events against per-type schemas.

    Rejections are terminal: an invalid event never becomes valid by retrying.
    """

    def __init__(self, schemas: Iterable[EventSchema] | None = None):
        """Initialize validation service.

        Args:
            schemas: Optional schema set override.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when two schemas share one `(event_type, version)` key.
        """

        self._schemas: dict[tuple[str, int], EventSchema] = {}
        for schema in DEFAULT_EVENT_SCHEMAS if schemas is None else schemas:
            schema_key = (schema.event_type, schema.version)
            if schema_key in self._schemas:
                raise ValueError(f"duplicate schema for event_type={schema.event_type} version={schema.version}")
            self._schemas[schema_key] = schema

    def validation_validate(self, event: DomainEvent) -> None:
        """Validate one enriched event.

        Args:
            event: Enriched domain event.

        Returns:
            None: Returns when the event is valid.

        Raises:
            ValidationFailed: Raised with the first violated rule.
        """

        self._validation_check_identity(event)

        schema = self._schemas.get((event.event_type, event.version))
        if schema is None:
            raise ValidationFailed(
                f"no schema registered for event_type={event.event_type} version={event.version}"
            )

        missing_fields = [key for key in schema.required_fields if event.payload.get(key) is None]
        if missing_fields:
            raise ValidationFailed(
                f"event_type={event.event_type} missing required fields: {', '.join(missing_fields)}"
            )

        for previous_key, new_key in schema.changed_pairs:
            previous_value = event.payload.get(previous_key)
            new_value = event.payload.get(new_key)
            if previous_value is None or new_value is None:
                continue
            if not domain_value_values_differ(previous_value, new_value):
                raise ValidationFailed(
                    f"event_type={event.event_type} requires {previous_key} != {new_key}, both={new_value}"
                )

        for key in schema.non_negative_fields:
            try:
                amount = domain_value_to_decimal(event.payload.get(key))
            except ValueError as error:
                raise ValidationFailed(f"event_type={event.event_type} field={key} is not numeric") from error
            if amount is not None and amount < 0:
                raise ValidationFailed(f"event_type={event.event_type} field={key} must be non-negative")

    def _validation_check_identity(self, event: DomainEvent) -> None:
        """Check identity and metadata fields shared by every event type.

        Args:
            event: Domain event.

        Returns:
            None: Returns when identity fields are complete.

        Raises:
            ValidationFailed: Raised when one identity field is blank.
        """

        for value, field_name in (
            (event.event_type, "event_type"),
            (event.event_category, "event_category"),
            (event.aggregate_id, "aggregate_id"),
            (event.aggregate_type, "aggregate_type"),
            (event.metadata.causation_id, "metadata.causation_id"),
            (event.metadata.correlation_id, "metadata.correlation_id"),
        ):
            if not isinstance(value, str) or not value.strip():
                raise ValidationFailed(f"{field_name} must not be blank")
        if event.version < 1:
            raise ValidationFailed("version must be >= 1")
