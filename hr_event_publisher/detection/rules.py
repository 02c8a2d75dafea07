"""Built-in detector rule kinds.

Every rule is a frozen, configuration-only object with a `name` and an
`evaluate(change)` method. Rules never share state; the registry decides which
table they apply to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from hr_event_publisher.domain import ChangeEvent, ChangeOperation, DomainEvent
from hr_event_publisher.domain.values import (
    domain_value_normalize_text,
    domain_value_to_decimal,
    domain_value_values_differ,
)

from .candidates import EventTarget, detection_build_candidate, detection_project_columns


def _detection_merge_payload(*parts: Mapping[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for part in parts:
        merged.update(part)
    return merged


@dataclass(frozen=True)
class CreateRule:
    """Emit one lifecycle-creation event for every created row.

    Attributes:
        name: Unique rule name.
        event_type: Creation event type.
        target: Taxonomy and aggregate binding.
        payload_columns: Row column to payload key projection.
    """

    name: str
    event_type: str
    target: EventTarget
    payload_columns: Mapping[str, str] = field(default_factory=dict)

    def evaluate(self, change: ChangeEvent) -> Iterator[DomainEvent]:
        if change.operation != ChangeOperation.CREATE or change.after is None:
            return
        yield detection_build_candidate(
            change=change,
            detector_name=self.name,
            event_type=self.event_type,
            target=self.target,
            payload=detection_project_columns(change.after, self.payload_columns),
        )


@dataclass(frozen=True)
class PromotionRule:
    """Emit a promotion when the position changes and compensation strictly increases.

    Attributes:
        name: Unique rule name.
        target: Taxonomy and aggregate binding.
        event_type: Promotion event type.
        position_column: Column holding the position code.
        compensation_column: Column holding the compensation amount.
        payload_columns: Extra after-image columns carried into the payload.
    """

    name: str
    target: EventTarget
    event_type: str = "EmployeePromoted"
    position_column: str = "position_id"
    compensation_column: str = "salary"
    payload_columns: Mapping[str, str] = field(default_factory=dict)

    def evaluate(self, change: ChangeEvent) -> Iterator[DomainEvent]:
        if change.operation != ChangeOperation.UPDATE or change.before is None or change.after is None:
            return

        previous_position = change.before.get(self.position_column)
        new_position = change.after.get(self.position_column)
        if not domain_value_values_differ(previous_position, new_position):
            return

        previous_compensation = domain_value_to_decimal(change.before.get(self.compensation_column))
        new_compensation = domain_value_to_decimal(change.after.get(self.compensation_column))
        if previous_compensation is None or new_compensation is None:
            return
        if new_compensation <= previous_compensation:
            return

        yield detection_build_candidate(
            change=change,
            detector_name=self.name,
            event_type=self.event_type,
            target=self.target,
            payload=_detection_merge_payload(
                detection_project_columns(change.after, self.payload_columns),
                {
                    "previousPosition": domain_value_normalize_text(previous_position),
                    "newPosition": domain_value_normalize_text(new_position),
                    "previousSalary": previous_compensation,
                    "newSalary": new_compensation,
                },
            ),
        )


@dataclass(frozen=True)
class TransferRule:
    """Emit a transfer when the grouping field changes but the position does not.

    Attributes:
        name: Unique rule name.
        target: Taxonomy and aggregate binding.
        event_type: Transfer event type.
        group_column: Column holding the grouping identifier (department).
        position_column: Column holding the position code.
        payload_columns: Extra after-image columns carried into the payload.
    """

    name: str
    target: EventTarget
    event_type: str = "EmployeeTransferred"
    group_column: str = "department_id"
    position_column: str = "position_id"
    payload_columns: Mapping[str, str] = field(default_factory=dict)

    def evaluate(self, change: ChangeEvent) -> Iterator[DomainEvent]:
        if change.operation != ChangeOperation.UPDATE or change.before is None or change.after is None:
            return

        previous_group = change.before.get(self.group_column)
        new_group = change.after.get(self.group_column)
        if not domain_value_values_differ(previous_group, new_group):
            return
        if domain_value_values_differ(change.before.get(self.position_column), change.after.get(self.position_column)):
            return

        yield detection_build_candidate(
            change=change,
            detector_name=self.name,
            event_type=self.event_type,
            target=self.target,
            payload=_detection_merge_payload(
                detection_project_columns(change.after, self.payload_columns),
                {
                    "previousDepartmentId": domain_value_normalize_text(previous_group),
                    "newDepartmentId": domain_value_normalize_text(new_group),
                },
            ),
        )


@dataclass(frozen=True)
class StatusTransitionRule:
    """Emit the event mapped to an (old status, new status) transition.

    Unmapped transitions produce nothing. Status values are compared
    case-insensitively.

    Attributes:
        name: Unique rule name.
        target: Taxonomy and aggregate binding.
        transitions: `(old, new)` status pair to event type.
        status_column: Column holding the status value.
        payload_columns: Extra after-image columns carried into the payload.
        static_payload_by_event_type: Constant payload fields per emitted event type.
    """

    name: str
    target: EventTarget
    transitions: Mapping[tuple[str, str], str]
    status_column: str = "status"
    payload_columns: Mapping[str, str] = field(default_factory=dict)
    static_payload_by_event_type: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def evaluate(self, change: ChangeEvent) -> Iterator[DomainEvent]:
        if change.operation != ChangeOperation.UPDATE or change.before is None or change.after is None:
            return

        previous_status = (domain_value_normalize_text(change.before.get(self.status_column)) or "").lower()
        new_status = (domain_value_normalize_text(change.after.get(self.status_column)) or "").lower()
        if previous_status == new_status:
            return

        event_type = self.transitions.get((previous_status, new_status))
        if event_type is None:
            return

        yield detection_build_candidate(
            change=change,
            detector_name=self.name,
            event_type=event_type,
            target=self.target,
            payload=_detection_merge_payload(
                detection_project_columns(change.after, self.payload_columns),
                self.static_payload_by_event_type.get(event_type, {}),
                {"previousStatus": previous_status, "newStatus": new_status},
            ),
        )


@dataclass(frozen=True)
class DeletionRule:
    """Emit a terminal event when a row of a lifecycle table is deleted.

    Register only on tables with lifecycle semantics; deletes on
    transactional tables are operational corrections.

    Attributes:
        name: Unique rule name.
        event_type: Terminal event type.
        target: Taxonomy and aggregate binding.
        payload_columns: Before-image columns carried into the payload.
        static_payload: Constant payload fields.
    """

    name: str
    event_type: str
    target: EventTarget
    payload_columns: Mapping[str, str] = field(default_factory=dict)
    static_payload: Mapping[str, Any] = field(default_factory=dict)

    def evaluate(self, change: ChangeEvent) -> Iterator[DomainEvent]:
        if change.operation != ChangeOperation.DELETE or change.before is None:
            return
        yield detection_build_candidate(
            change=change,
            detector_name=self.name,
            event_type=self.event_type,
            target=self.target,
            payload=_detection_merge_payload(
                detection_project_columns(change.before, self.payload_columns),
                self.static_payload,
            ),
        )


@dataclass(frozen=True)
class FieldChangeRule:
    """Emit one event when any watched column changes on update.

    The payload lists the changed fields and carries `previous<Stem>` and
    `new<Stem>` for each of them.

    Attributes:
        name: Unique rule name.
        event_type: Event type.
        target: Taxonomy and aggregate binding.
        watched_columns: Column name to payload key stem.
        payload_columns: Extra after-image columns carried into the payload.
    """

    name: str
    event_type: str
    target: EventTarget
    watched_columns: Mapping[str, str]
    payload_columns: Mapping[str, str] = field(default_factory=dict)

    def evaluate(self, change: ChangeEvent) -> Iterator[DomainEvent]:
        if change.operation != ChangeOperation.UPDATE or change.before is None or change.after is None:
            return

        changed_payload: dict[str, Any] = {}
        changed_fields: list[str] = []
        for column, stem in self.watched_columns.items():
            previous_value = change.before.get(column)
            new_value = change.after.get(column)
            if not domain_value_values_differ(previous_value, new_value):
                continue
            changed_fields.append(stem[:1].lower() + stem[1:])
            changed_payload[f"previous{stem}"] = previous_value
            changed_payload[f"new{stem}"] = new_value

        if not changed_fields:
            return

        yield detection_build_candidate(
            change=change,
            detector_name=self.name,
            event_type=self.event_type,
            target=self.target,
            payload=_detection_merge_payload(
                detection_project_columns(change.after, self.payload_columns),
                changed_payload,
                {"changedFields": changed_fields},
            ),
        )


@dataclass(frozen=True)
class ValueMatchRule:
    """Emit one event when a created row carries a watched column value.

    Attributes:
        name: Unique rule name.
        event_type: Event type.
        target: Taxonomy and aggregate binding.
        column: Watched column.
        matched_values: Lower-cased values that fire the rule.
        payload_columns: After-image columns carried into the payload.
    """

    name: str
    event_type: str
    target: EventTarget
    column: str
    matched_values: frozenset[str]
    payload_columns: Mapping[str, str] = field(default_factory=dict)

    def evaluate(self, change: ChangeEvent) -> Iterator[DomainEvent]:
        if change.operation != ChangeOperation.CREATE or change.after is None:
            return

        value = (domain_value_normalize_text(change.after.get(self.column)) or "").lower()
        if value not in self.matched_values:
            return

        yield detection_build_candidate(
            change=change,
            detector_name=self.name,
            event_type=self.event_type,
            target=self.target,
            payload=detection_project_columns(change.after, self.payload_columns),
        )
