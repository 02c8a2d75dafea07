"""Payload schemas per event type and version."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class EventSchema:
    """Structural and business rules for one `(event_type, version)` payload.

    Attributes:
        event_type: Event type label.
        version: Payload schema version.
        required_fields: Payload keys that must be present and non-null.
        changed_pairs: `(previous, new)` key pairs that must differ.
        non_negative_fields: Payload keys holding compensation amounts.
    """

    event_type: str
    version: int
    required_fields: tuple[str, ...]
    changed_pairs: tuple[tuple[str, str], ...] = ()
    non_negative_fields: tuple[str, ...] = ()


_STATUS_PAIR: Final[tuple[tuple[str, str], ...]] = (("previousStatus", "newStatus"),)

DEFAULT_EVENT_SCHEMAS: Final[tuple[EventSchema, ...]] = (
    EventSchema(
        event_type="EmployeeHired",
        version=1,
        required_fields=("employeeNumber", "positionId", "hireDate"),
        non_negative_fields=("salary",),
    ),
    EventSchema(
        event_type="EmployeePromoted",
        version=1,
        required_fields=("previousPosition", "newPosition", "previousSalary", "newSalary"),
        changed_pairs=(("previousPosition", "newPosition"), ("previousSalary", "newSalary")),
        non_negative_fields=("previousSalary", "newSalary"),
    ),
    EventSchema(
        event_type="EmployeeTransferred",
        version=1,
        required_fields=("newDepartmentId",),
        changed_pairs=(("previousDepartmentId", "newDepartmentId"),),
    ),
    EventSchema(
        event_type="EmployeeTerminated",
        version=1,
        required_fields=("terminationSource", "newStatus"),
    ),
    EventSchema(
        event_type="EmployeeSuspended",
        version=1,
        required_fields=("previousStatus", "newStatus"),
        changed_pairs=_STATUS_PAIR,
    ),
    EventSchema(
        event_type="EmployeeReinstated",
        version=1,
        required_fields=("previousStatus", "newStatus"),
        changed_pairs=_STATUS_PAIR,
    ),
    EventSchema(
        event_type="EmployeeReturnedFromLeave",
        version=1,
        required_fields=("previousStatus", "newStatus"),
        changed_pairs=_STATUS_PAIR,
    ),
    EventSchema(
        event_type="SalaryAdjusted",
        version=1,
        required_fields=("salaryChangeId", "newSalary", "effectiveDate"),
        changed_pairs=(("previousSalary", "newSalary"),),
        non_negative_fields=("previousSalary", "newSalary"),
    ),
    EventSchema(event_type="DepartmentCreated", version=1, required_fields=("departmentName",)),
    EventSchema(event_type="DepartmentRestructured", version=1, required_fields=("changedFields",)),
    EventSchema(event_type="DepartmentDissolved", version=1, required_fields=("departmentName",)),
    EventSchema(
        event_type="PositionCreated",
        version=1,
        required_fields=("positionId", "positionTitle"),
        non_negative_fields=("salaryMin", "salaryMax"),
    ),
    EventSchema(
        event_type="LeaveRequestSubmitted",
        version=1,
        required_fields=("employeeId", "leaveType", "startDate", "endDate"),
    ),
    EventSchema(
        event_type="LeaveRequestApproved",
        version=1,
        required_fields=("employeeId", "previousStatus", "newStatus"),
        changed_pairs=_STATUS_PAIR,
    ),
    EventSchema(
        event_type="LeaveRequestRejected",
        version=1,
        required_fields=("employeeId", "previousStatus", "newStatus"),
        changed_pairs=_STATUS_PAIR,
    ),
    EventSchema(
        event_type="LeaveRequestCancelled",
        version=1,
        required_fields=("employeeId", "previousStatus", "newStatus"),
        changed_pairs=_STATUS_PAIR,
    ),
    EventSchema(
        event_type="AttendanceAnomalyDetected",
        version=1,
        required_fields=("employeeId", "attendanceDate", "anomalyType"),
    ),
)
