"""Regression tests for enriched-event validation rules."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from hr_event_publisher.domain import DomainEvent, EventMetadata, SourcePosition, ValidationFailed
from hr_event_publisher.validation import EventSchema, ValidationService


def _build_event(event_type: str, payload: dict, version: int = 1) -> DomainEvent:
    """Build a domain event for validation.

    Args:
        event_type: Event type label.
        payload: Event payload.
        version: Payload schema version.

    Returns:
        DomainEvent: Event under test.

    Raises:
        ValueError: This helper does not raise value errors.
    """

    return DomainEvent(
        event_id=uuid4(),
        event_type=event_type,
        event_category="employee",
        aggregate_id="42",
        aggregate_type="Employee",
        version=version,
        payload=payload,
        metadata=EventMetadata(
            causation_id="employees/42@mysql-bin.000003:4512:0",
            correlation_id="correlation",
            source_position=SourcePosition("mysql-bin.000003", 4512),
        ),
        occurred_at_utc=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        detector_name="employees.promoted",
    )


def test_validation_accepts_complete_promotion() -> None:
    """Accept a promotion with changed position and raised salary.

    Returns:
        None: Assertions validate acceptance.

    Raises:
        AssertionError: Raised when a valid event is rejected.
    """

    service = ValidationService()

    service.validation_validate(
        _build_event(
            "EmployeePromoted",
            {"previousPosition": "IC3", "newPosition": "IC4", "previousSalary": "120000", "newSalary": "150000"},
        )
    )


def test_validation_rejects_missing_required_field() -> None:
    """Reject an event missing a required payload field.

    Returns:
        None: Assertions validate required-field rule.

    Raises:
        AssertionError: Raised when missing field is accepted.
    """

    service = ValidationService()

    with pytest.raises(ValidationFailed, match="missing required fields: hireDate"):
        service.validation_validate(
            _build_event("EmployeeHired", {"employeeNumber": "E-0042", "positionId": "IC3", "hireDate": None})
        )


def test_validation_rejects_unchanged_before_after_pair() -> None:
    """Reject a salary adjustment whose new salary equals the previous one.

    Returns:
        None: Assertions validate changed-pair rule.

    Raises:
        AssertionError: Raised when no-op adjustment is accepted.
    """

    service = ValidationService()

    with pytest.raises(ValidationFailed, match="requires previousSalary != newSalary"):
        service.validation_validate(
            _build_event(
                "SalaryAdjusted",
                {
                    "salaryChangeId": 5,
                    "previousSalary": "90000.00",
                    "newSalary": 90000,
                    "effectiveDate": "2026-10-01",
                },
            )
        )


def test_validation_rejects_negative_compensation() -> None:
    """Reject negative compensation amounts.

    Returns:
        None: Assertions validate non-negative rule.

    Raises:
        AssertionError: Raised when negative salary is accepted.
    """

    service = ValidationService()

    with pytest.raises(ValidationFailed, match="field=salary must be non-negative"):
        service.validation_validate(
            _build_event(
                "EmployeeHired",
                {"employeeNumber": "E-0042", "positionId": "IC3", "hireDate": 20379, "salary": "-1"},
            )
        )


def test_validation_rejects_unknown_schema_version_and_blank_identity() -> None:
    """Reject events without a registered schema or with blank identity fields.

    Returns:
        None: Assertions validate schema lookup and identity checks.

    Raises:
        AssertionError: Raised when invalid events are accepted.
    """

    service = ValidationService()
    valid_terminated = _build_event(
        "EmployeeTerminated",
        {"terminationSource": "status_change", "newStatus": "terminated"},
    )
    service.validation_validate(valid_terminated)

    with pytest.raises(ValidationFailed, match="no schema registered"):
        service.validation_validate(replace(valid_terminated, version=2))
    with pytest.raises(ValidationFailed, match="aggregate_id must not be blank"):
        service.validation_validate(replace(valid_terminated, aggregate_id=" "))


def test_validation_rejects_duplicate_schema_registration() -> None:
    """Reject two schemas sharing one event type and version.

    Returns:
        None: Assertions validate constructor guard.

    Raises:
        AssertionError: Raised when duplicate schemas are accepted.
    """

    schema = EventSchema(event_type="EmployeeHired", version=1, required_fields=("employeeNumber",))

    with pytest.raises(ValueError, match="duplicate schema"):
        ValidationService(schemas=(schema, schema))
