"""Regression tests for detector rules, registry ordering and fault isolation."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from hr_event_publisher.detection import (
    CreateRule,
    DetectorRegistry,
    EventTarget,
    detection_build_default_registry,
)
from hr_event_publisher.domain import ChangeEvent, ChangeOperation, SourcePosition

_EMPLOYEE_BEFORE = {
    "id": 42,
    "employee_number": "E-0042",
    "first_name": "Ada",
    "last_name": "Lovelace",
    "position_id": "IC3",
    "department_id": 7,
    "salary": "120000.00",
    "status": "active",
    "updated_at": 1760000000000,
}


def _build_employee_update(after_changes: dict, log_offset: int = 4512) -> ChangeEvent:
    """Build an employee update change event.

    Args:
        after_changes: Columns changed in the after image.
        log_offset: Replication log offset.

    Returns:
        ChangeEvent: Update change event.

    Raises:
        ValueError: Raised by ChangeEvent when images are invalid.
    """

    return ChangeEvent(
        table="employees",
        operation=ChangeOperation.UPDATE,
        before=dict(_EMPLOYEE_BEFORE),
        after={**_EMPLOYEE_BEFORE, **after_changes},
        source_timestamp=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        source_position=SourcePosition(log_file="mysql-bin.000003", log_offset=log_offset),
    )


class _FaultRecorder:
    """Detection fault listener capturing isolated rule failures."""

    def __init__(self):
        """Initialize empty capture list.

        Returns:
            None: Initializer does not return values.

        Raises:
            RuntimeError: This stub does not raise runtime errors.
        """

        self.faults: list[tuple[str, str]] = []

    def __call__(self, rule_name: str, change: ChangeEvent, error: Exception) -> None:
        """Capture one fault.

        Args:
            rule_name: Failing rule name.
            change: Change being evaluated.
            error: Raised exception.

        Returns:
            None: Fault is captured as side effect.

        Raises:
            RuntimeError: This stub does not raise runtime errors.
        """

        _ = change
        self.faults.append((rule_name, str(error)))


class _ExplodingRule:
    """Detector rule stub that always raises."""

    name = "employees.exploding"

    def evaluate(self, change: ChangeEvent):
        """Raise deterministic rule error.

        Args:
            change: Change event.

        Returns:
            Iterable: This method does not return.

        Raises:
            KeyError: Always raised by this stub.
        """

        _ = change
        raise KeyError("grade")


def test_detection_promotion_emits_one_event_with_positions_and_salaries() -> None:
    """Emit exactly one promotion when position changes and salary rises.

    Returns:
        None: Assertions validate promotion detection.

    Raises:
        AssertionError: Raised when candidates do not match expected promotion.
    """

    registry = detection_build_default_registry()
    change = _build_employee_update({"position_id": "IC4", "salary": 150000})

    candidates = list(registry.detection_detect(change))

    assert [candidate.event_type for candidate in candidates] == ["EmployeePromoted"]
    promotion = candidates[0]
    assert promotion.payload["previousPosition"] == "IC3"
    assert promotion.payload["newPosition"] == "IC4"
    assert promotion.payload["previousSalary"] == Decimal("120000.00")
    assert promotion.payload["newSalary"] == Decimal("150000")
    assert promotion.aggregate_id == "42"
    assert promotion.aggregate_type == "Employee"
    assert promotion.event_subject() == "events.employee.EmployeePromoted"
    assert promotion.metadata.causation_id == "employees/42@mysql-bin.000003:4512:0"
    assert promotion.occurred_at_utc == change.source_timestamp


def test_detection_position_change_without_raise_is_not_a_promotion() -> None:
    """Skip promotion when compensation does not strictly increase.

    Returns:
        None: Assertions validate promotion guard.

    Raises:
        AssertionError: Raised when a promotion is emitted.
    """

    registry = detection_build_default_registry()
    change = _build_employee_update({"position_id": "IC4", "salary": "120000"})

    assert list(registry.detection_detect(change)) == []


def test_detection_timestamp_only_update_emits_nothing() -> None:
    """Emit no candidates when only bookkeeping columns change.

    Returns:
        None: Assertions validate empty candidate stream.

    Raises:
        AssertionError: Raised when candidates are emitted.
    """

    registry = detection_build_default_registry()
    change = _build_employee_update({"updated_at": 1760000999000})

    assert list(registry.detection_detect(change)) == []


def test_detection_mapped_status_transition_emits_terminal_event() -> None:
    """Emit termination for mapped transition and nothing for unmapped one.

    Returns:
        None: Assertions validate status transition mapping.

    Raises:
        AssertionError: Raised when transition mapping is wrong.
    """

    registry = detection_build_default_registry()

    terminated = list(registry.detection_detect(_build_employee_update({"status": "Terminated"})))
    on_leave = list(registry.detection_detect(_build_employee_update({"status": "onleave"})))

    assert [candidate.event_type for candidate in terminated] == ["EmployeeTerminated"]
    assert terminated[0].payload["previousStatus"] == "active"
    assert terminated[0].payload["newStatus"] == "terminated"
    assert terminated[0].payload["terminationSource"] == "status_change"
    assert on_leave == []


def test_detection_department_change_with_same_position_is_transfer() -> None:
    """Emit a transfer when the department changes and the position does not.

    Returns:
        None: Assertions validate transfer detection.

    Raises:
        AssertionError: Raised when transfer is not emitted.
    """

    registry = detection_build_default_registry()

    candidates = list(registry.detection_detect(_build_employee_update({"department_id": 9})))

    assert [candidate.event_type for candidate in candidates] == ["EmployeeTransferred"]
    assert candidates[0].payload["previousDepartmentId"] == "7"
    assert candidates[0].payload["newDepartmentId"] == "9"
    assert candidates[0].payload["positionId"] == "IC3"


def test_detection_employee_delete_emits_record_deleted_termination() -> None:
    """Emit termination when an employee row is deleted.

    Returns:
        None: Assertions validate deletion mapping.

    Raises:
        AssertionError: Raised when deletion mapping is wrong.
    """

    registry = detection_build_default_registry()
    change = ChangeEvent(
        table="employees",
        operation=ChangeOperation.DELETE,
        before=dict(_EMPLOYEE_BEFORE),
        after=None,
        source_timestamp=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        source_position=SourcePosition(log_file="mysql-bin.000003", log_offset=9000),
    )

    candidates = list(registry.detection_detect(change))

    assert [candidate.event_type for candidate in candidates] == ["EmployeeTerminated"]
    assert candidates[0].payload["terminationSource"] == "record_deleted"
    assert candidates[0].payload["previousStatus"] == "active"


def test_detection_attendance_anomaly_matches_only_watched_statuses() -> None:
    """Emit anomaly events for late or absent attendance only.

    Returns:
        None: Assertions validate value-match rule.

    Raises:
        AssertionError: Raised when anomaly detection is wrong.
    """

    registry = detection_build_default_registry()

    def _attendance(status: str, log_offset: int) -> ChangeEvent:
        return ChangeEvent(
            table="attendance_records",
            operation=ChangeOperation.CREATE,
            before=None,
            after={"id": log_offset, "employee_id": 42, "attendance_date": 20379, "status": status},
            source_timestamp=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
            source_position=SourcePosition(log_file="mysql-bin.000003", log_offset=log_offset),
        )

    late = list(registry.detection_detect(_attendance("LATE", 100)))
    present = list(registry.detection_detect(_attendance("present", 200)))

    assert [candidate.event_type for candidate in late] == ["AttendanceAnomalyDetected"]
    assert late[0].aggregate_id == "42"
    assert late[0].event_category == "attendance"
    assert late[0].payload["attendanceDate"] == "2025-10-18"
    assert present == []


def test_detection_unregistered_table_emits_nothing() -> None:
    """Emit no candidates for tables without rules.

    Returns:
        None: Assertions validate empty candidate stream.

    Raises:
        AssertionError: Raised when candidates are emitted.
    """

    registry = detection_build_default_registry()
    change = ChangeEvent(
        table="audit_log",
        operation=ChangeOperation.CREATE,
        before=None,
        after={"id": 1},
        source_timestamp=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        source_position=SourcePosition(log_file="mysql-bin.000003", log_offset=1),
    )

    assert list(registry.detection_detect(change)) == []


def test_detection_is_deterministic_across_replays() -> None:
    """Produce identical candidates, ids included, when a change is replayed.

    Returns:
        None: Assertions validate replay determinism.

    Raises:
        AssertionError: Raised when replays differ.
    """

    change = _build_employee_update({"position_id": "IC4", "salary": 150000, "status": "suspended"})

    first_pass = list(detection_build_default_registry().detection_detect(change))
    second_pass = list(detection_build_default_registry().detection_detect(change))

    assert [candidate.event_type for candidate in first_pass] == ["EmployeePromoted", "EmployeeSuspended"]
    assert first_pass == second_pass
    assert len({candidate.event_id for candidate in first_pass}) == 2


def test_detection_failing_rule_is_isolated_from_later_rules() -> None:
    """Skip a failing rule, notify the listener and keep evaluating later rules.

    Returns:
        None: Assertions validate fault isolation.

    Raises:
        AssertionError: Raised when the fault propagates or later rules are skipped.
    """

    fault_recorder = _FaultRecorder()
    registry = DetectorRegistry(fault_listener=fault_recorder)
    registry.detection_register("employees", _ExplodingRule())
    registry.detection_register(
        "employees",
        CreateRule(
            name="employees.hired",
            event_type="EmployeeHired",
            target=EventTarget(event_category="employee", aggregate_type="Employee"),
            payload_columns={"employee_number": "employeeNumber"},
        ),
    )
    change = ChangeEvent(
        table="employees",
        operation=ChangeOperation.CREATE,
        before=None,
        after={"id": 43, "employee_number": "E-0043"},
        source_timestamp=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        source_position=SourcePosition(log_file="mysql-bin.000003", log_offset=77),
    )

    candidates = list(registry.detection_detect(change))

    assert [candidate.event_type for candidate in candidates] == ["EmployeeHired"]
    assert candidates[0].payload == {"employeeNumber": "E-0043"}
    assert fault_recorder.faults == [("employees.exploding", "'grade'")]


def test_detection_registry_rejects_duplicate_rule_names() -> None:
    """Reject a second rule with the same name on one table.

    Returns:
        None: Assertions validate registration guard.

    Raises:
        AssertionError: Raised when duplicate rule is accepted.
    """

    registry = DetectorRegistry()
    registry.detection_register("employees", _ExplodingRule())

    with pytest.raises(ValueError, match="already registered"):
        registry.detection_register("employees", _ExplodingRule())


def test_detection_row_key_uses_declared_primary_key() -> None:
    """Build lane routing keys from the declared primary key columns.

    Returns:
        None: Assertions validate row key format.

    Raises:
        AssertionError: Raised when row key is wrong.
    """

    registry = detection_build_default_registry()

    assert registry.detection_row_key(_build_employee_update({"status": "suspended"})) == "employees:42"


def test_detection_lane_key_serializes_changes_of_one_employee_across_tables() -> None:
    """Route employee rows and their dependent rows to one aggregate lane.

    Returns:
        None: Assertions validate aggregate lane routing.

    Raises:
        AssertionError: Raised when one employee's changes could run in parallel lanes.
    """

    registry = detection_build_default_registry()
    salary_change = ChangeEvent(
        table="salary_changes",
        operation=ChangeOperation.CREATE,
        before=None,
        after={"id": 7001, "employee_id": 42, "old_salary": "120000.00", "new_salary": "150000.00"},
        source_timestamp=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        source_position=SourcePosition(log_file="mysql-bin.000003", log_offset=4600),
    )
    department_change = ChangeEvent(
        table="departments",
        operation=ChangeOperation.CREATE,
        before=None,
        after={"id": 9, "name": "Platform"},
        source_timestamp=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        source_position=SourcePosition(log_file="mysql-bin.000003", log_offset=4700),
    )

    employee_lane_key = registry.detection_lane_key(_build_employee_update({"status": "suspended"}))

    assert employee_lane_key == "Employee:42"
    assert registry.detection_lane_key(salary_change) == employee_lane_key
    assert registry.detection_lane_key(department_change) == "departments:9"
    with pytest.raises(ValueError, match="must not be blank"):
        registry.detection_register_lane_route("salary_changes", "Employee", " ")
