"""Enrichment service resolving reference codes in candidate payloads."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Final, Mapping

from hr_event_publisher.domain import DomainEvent, EnrichmentUnavailable

from .interfaces import REFERENCE_NOT_FOUND, EnrichmentLookup, ReferenceReadModelPort

logger = logging.getLogger(__name__)

_POSITION_AND_DEPARTMENT: Final[tuple[EnrichmentLookup, ...]] = (
    EnrichmentLookup(source_key="positionId", entity_type="position", target_key="positionTitle"),
    EnrichmentLookup(source_key="departmentId", entity_type="department", target_key="departmentName"),
)
_EMPLOYEE_NAME: Final[tuple[EnrichmentLookup, ...]] = (
    EnrichmentLookup(source_key="employeeId", entity_type="employee", target_key="employeeName"),
)

DEFAULT_ENRICHMENT_LOOKUPS: Final[dict[str, tuple[EnrichmentLookup, ...]]] = {
    "EmployeeHired": _POSITION_AND_DEPARTMENT,
    "EmployeePromoted": (
        EnrichmentLookup(source_key="previousPosition", entity_type="position", target_key="previousPositionTitle"),
        EnrichmentLookup(source_key="newPosition", entity_type="position", target_key="newPositionTitle"),
        EnrichmentLookup(source_key="departmentId", entity_type="department", target_key="departmentName"),
    ),
    "EmployeeTransferred": (
        EnrichmentLookup(
            source_key="previousDepartmentId",
            entity_type="department",
            target_key="previousDepartmentName",
        ),
        EnrichmentLookup(source_key="newDepartmentId", entity_type="department", target_key="newDepartmentName"),
        EnrichmentLookup(source_key="positionId", entity_type="position", target_key="positionTitle"),
    ),
    "EmployeeTerminated": _POSITION_AND_DEPARTMENT,
    "EmployeeSuspended": _POSITION_AND_DEPARTMENT,
    "EmployeeReinstated": _POSITION_AND_DEPARTMENT,
    "EmployeeReturnedFromLeave": _POSITION_AND_DEPARTMENT,
    "SalaryAdjusted": _EMPLOYEE_NAME,
    "DepartmentCreated": (
        EnrichmentLookup(
            source_key="parentDepartmentId",
            entity_type="department",
            target_key="parentDepartmentName",
        ),
    ),
    "LeaveRequestSubmitted": _EMPLOYEE_NAME,
    "LeaveRequestApproved": _EMPLOYEE_NAME,
    "LeaveRequestRejected": _EMPLOYEE_NAME,
    "LeaveRequestCancelled": _EMPLOYEE_NAME,
    "AttendanceAnomalyDetected": _EMPLOYEE_NAME,
}


class EnrichmentService:
    """Fill reference display values into candidate payloads.

    The service is read-only towards the reference store. Unknown codes are
    recorded as `None`; an unreachable store raises `EnrichmentUnavailable`
    so the caller can retry the candidate.
    """

    def __init__(
        self,
        reference_read_model: ReferenceReadModelPort,
        lookups_by_event_type: Mapping[str, tuple[EnrichmentLookup, ...]] | None = None,
    ):
        """Initialize enrichment service.

        Args:
            reference_read_model: Reference read model, usually wrapped in a read-through cache.
            lookups_by_event_type: Optional lookup table override.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when the read model is missing.
        """

        if reference_read_model is None:
            raise ValueError("reference_read_model must not be None")

        self._reference_read_model = reference_read_model
        self._lookups_by_event_type = dict(
            DEFAULT_ENRICHMENT_LOOKUPS if lookups_by_event_type is None else lookups_by_event_type
        )

    def enrichment_enrich(self, event: DomainEvent) -> DomainEvent:
        """Return the event with every configured reference resolved.

        Args:
            event: Candidate event.

        Returns:
            DomainEvent: Enriched event with identical identity fields.

        Raises:
            EnrichmentUnavailable: Raised when the reference store cannot be reached.
        """

        lookups = self._lookups_by_event_type.get(event.event_type, ())
        if not lookups:
            return event

        enriched_payload = dict(event.payload)
        for lookup in lookups:
            source_value = enriched_payload.get(lookup.source_key)
            if source_value is None or not str(source_value).strip():
                enriched_payload[lookup.target_key] = None
                continue

            reference_key = str(source_value).strip()
            try:
                resolved_value = self._reference_read_model.reference_lookup(lookup.entity_type, reference_key)
            except (ConnectionError, TimeoutError) as error:
                raise EnrichmentUnavailable(
                    f"reference store unavailable for entity_type={lookup.entity_type} key={reference_key}"
                ) from error

            if resolved_value is REFERENCE_NOT_FOUND:
                logger.warning(
                    "reference not found entity_type=%s key=%s event_id=%s",
                    lookup.entity_type,
                    reference_key,
                    event.event_id,
                )
                enriched_payload[lookup.target_key] = None
            else:
                enriched_payload[lookup.target_key] = resolved_value

        enriched_event = replace(event, payload=enriched_payload)
        if enriched_event.event_identity() != event.event_identity():
            raise RuntimeError("enrichment must not change event identity fields")
        return enriched_event
