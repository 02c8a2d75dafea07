"""Default HR detector catalog for the source tables captured from the HR database."""

from __future__ import annotations

from typing import Final

from .candidates import EventTarget
from .interfaces import DetectionFaultListener
from .registry import DetectorRegistry
from .rules import (
    CreateRule,
    DeletionRule,
    FieldChangeRule,
    PromotionRule,
    StatusTransitionRule,
    TransferRule,
    ValueMatchRule,
)

EMPLOYEE_STATUS_TRANSITIONS: Final[dict[tuple[str, str], str]] = {
    ("active", "terminated"): "EmployeeTerminated",
    ("onleave", "terminated"): "EmployeeTerminated",
    ("suspended", "terminated"): "EmployeeTerminated",
    ("active", "suspended"): "EmployeeSuspended",
    ("suspended", "active"): "EmployeeReinstated",
    ("onleave", "active"): "EmployeeReturnedFromLeave",
}

LEAVE_REQUEST_STATUS_TRANSITIONS: Final[dict[tuple[str, str], str]] = {
    ("pending", "approved"): "LeaveRequestApproved",
    ("pending", "rejected"): "LeaveRequestRejected",
    ("pending", "cancelled"): "LeaveRequestCancelled",
    ("approved", "cancelled"): "LeaveRequestCancelled",
}

ATTENDANCE_ANOMALY_STATUSES: Final[frozenset[str]] = frozenset({"late", "absent"})

_EMPLOYEE_TARGET = EventTarget(event_category="employee", aggregate_type="Employee")
_EMPLOYEE_REFERENCE_COLUMNS: Final[dict[str, str]] = {
    "employee_number": "employeeNumber",
    "department_id": "departmentId",
    "position_id": "positionId",
}


def detection_build_default_registry(fault_listener: DetectionFaultListener | None = None) -> DetectorRegistry:
    """Build the registry of built-in HR rules.

    Args:
        fault_listener: Optional observer of isolated rule failures.

    Returns:
        DetectorRegistry: Registry with rules for all captured HR tables.

    Raises:
        ValueError: Raised when the catalog registers a duplicate rule name.
    """

    registry = DetectorRegistry(fault_listener=fault_listener)

    registry.detection_register(
        "employees",
        CreateRule(
            name="employees.hired",
            event_type="EmployeeHired",
            target=_EMPLOYEE_TARGET,
            payload_columns={
                "employee_number": "employeeNumber",
                "first_name": "firstName",
                "last_name": "lastName",
                "email": "email",
                "position_id": "positionId",
                "department_id": "departmentId",
                "manager_id": "managerId",
                "salary": "salary",
                "hire_date": "hireDate",
            },
        ),
    )
    registry.detection_register(
        "employees",
        PromotionRule(
            name="employees.promoted",
            target=_EMPLOYEE_TARGET,
            payload_columns={"employee_number": "employeeNumber", "department_id": "departmentId"},
        ),
    )
    registry.detection_register(
        "employees",
        TransferRule(
            name="employees.transferred",
            target=_EMPLOYEE_TARGET,
            payload_columns={"employee_number": "employeeNumber", "position_id": "positionId"},
        ),
    )
    registry.detection_register(
        "employees",
        StatusTransitionRule(
            name="employees.status_transition",
            target=_EMPLOYEE_TARGET,
            transitions=EMPLOYEE_STATUS_TRANSITIONS,
            payload_columns=_EMPLOYEE_REFERENCE_COLUMNS,
            static_payload_by_event_type={"EmployeeTerminated": {"terminationSource": "status_change"}},
        ),
    )
    registry.detection_register(
        "employees",
        DeletionRule(
            name="employees.deleted",
            event_type="EmployeeTerminated",
            target=_EMPLOYEE_TARGET,
            payload_columns={
                **_EMPLOYEE_REFERENCE_COLUMNS,
                "status": "previousStatus",
            },
            static_payload={"terminationSource": "record_deleted", "newStatus": "terminated"},
        ),
    )

    registry.detection_register(
        "salary_changes",
        CreateRule(
            name="salary_changes.adjusted",
            event_type="SalaryAdjusted",
            target=EventTarget(
                event_category="compensation",
                aggregate_type="Employee",
                aggregate_id_column="employee_id",
            ),
            payload_columns={
                "id": "salaryChangeId",
                "employee_id": "employeeId",
                "old_salary": "previousSalary",
                "new_salary": "newSalary",
                "reason": "reason",
                "effective_date": "effectiveDate",
                "approved_by": "approvedBy",
            },
        ),
    )

    department_target = EventTarget(event_category="organization", aggregate_type="Department")
    registry.detection_register(
        "departments",
        CreateRule(
            name="departments.created",
            event_type="DepartmentCreated",
            target=department_target,
            payload_columns={
                "name": "departmentName",
                "parent_department_id": "parentDepartmentId",
                "manager_id": "managerId",
            },
        ),
    )
    registry.detection_register(
        "departments",
        FieldChangeRule(
            name="departments.restructured",
            event_type="DepartmentRestructured",
            target=department_target,
            watched_columns={
                "parent_department_id": "ParentDepartmentId",
                "manager_id": "ManagerId",
                "name": "DepartmentName",
            },
        ),
    )
    registry.detection_register(
        "departments",
        DeletionRule(
            name="departments.dissolved",
            event_type="DepartmentDissolved",
            target=department_target,
            payload_columns={"name": "departmentName", "parent_department_id": "parentDepartmentId"},
        ),
    )

    registry.detection_register(
        "positions",
        CreateRule(
            name="positions.created",
            event_type="PositionCreated",
            target=EventTarget(event_category="organization", aggregate_type="Position"),
            payload_columns={
                "id": "positionId",
                "title": "positionTitle",
                "level": "level",
                "salary_min": "salaryMin",
                "salary_max": "salaryMax",
            },
        ),
    )

    leave_target = EventTarget(event_category="leave", aggregate_type="LeaveRequest")
    leave_columns = {
        "employee_id": "employeeId",
        "leave_type": "leaveType",
        "start_date": "startDate",
        "end_date": "endDate",
    }
    registry.detection_register(
        "leave_requests",
        CreateRule(
            name="leave_requests.submitted",
            event_type="LeaveRequestSubmitted",
            target=leave_target,
            payload_columns={**leave_columns, "reason": "reason"},
        ),
    )
    registry.detection_register(
        "leave_requests",
        StatusTransitionRule(
            name="leave_requests.status_transition",
            target=leave_target,
            transitions=LEAVE_REQUEST_STATUS_TRANSITIONS,
            payload_columns={**leave_columns, "approved_by": "approvedBy"},
        ),
    )

    registry.detection_register(
        "attendance_records",
        ValueMatchRule(
            name="attendance_records.anomaly",
            event_type="AttendanceAnomalyDetected",
            target=EventTarget(
                event_category="attendance",
                aggregate_type="Employee",
                aggregate_id_column="employee_id",
            ),
            column="status",
            matched_values=ATTENDANCE_ANOMALY_STATUSES,
            payload_columns={
                "id": "attendanceRecordId",
                "employee_id": "employeeId",
                "attendance_date": "attendanceDate",
                "status": "anomalyType",
                "check_in_time": "checkInTime",
                "notes": "notes",
            },
        ),
    )

    for table in ("employees", "salary_changes", "departments", "positions", "leave_requests", "attendance_records"):
        registry.detection_register_primary_key(table, ("id",))

    registry.detection_register_lane_route("employees", "Employee", "id")
    for table in ("salary_changes", "leave_requests", "attendance_records"):
        registry.detection_register_lane_route(table, "Employee", "employee_id")

    return registry
