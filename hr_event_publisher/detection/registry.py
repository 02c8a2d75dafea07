"""Ordered, table-keyed registry of detector rules with per-rule fault isolation."""

from __future__ import annotations

import logging
from typing import Iterator

from hr_event_publisher.domain import ChangeEvent, DetectionFault, DomainEvent

from .interfaces import DetectionFaultListener, DetectorRule

logger = logging.getLogger(__name__)


class DetectorRegistry:
    """Mapping of table name to ordered rules.

    Rules run in registration order so the candidate stream of one change event
    is deterministic. A failing rule is logged and skipped; the remaining rules
    still run.
    """

    def __init__(self, fault_listener: DetectionFaultListener | None = None):
        """Initialize an empty registry.

        Args:
            fault_listener: Optional observer of isolated rule failures.

        Returns:
            None: Initializer does not return a value.

        Raises:
            RuntimeError: This initializer does not raise runtime errors.
        """

        self._rules_by_table: dict[str, list[DetectorRule]] = {}
        self._primary_keys_by_table: dict[str, tuple[str, ...]] = {}
        self._lane_routes_by_table: dict[str, tuple[str, str]] = {}
        self._fault_listener = fault_listener

    def detection_register(self, table: str, rule: DetectorRule) -> None:
        """Append one rule to the ordered rule list of a table.

        Args:
            table: Source table name.
            rule: Detector rule.

        Returns:
            None: Registry is updated as side effect.

        Raises:
            ValueError: Raised when the table is blank or the rule name is already registered for it.
        """

        normalized_table = table.strip()
        if not normalized_table:
            raise ValueError("table must not be blank")
        table_rules = self._rules_by_table.setdefault(normalized_table, [])
        if any(existing_rule.name == rule.name for existing_rule in table_rules):
            raise ValueError(f"rule name={rule.name} already registered for table={normalized_table}")
        table_rules.append(rule)

    def detection_register_primary_key(self, table: str, primary_key_columns: tuple[str, ...]) -> None:
        """Declare the primary key columns of a table.

        Args:
            table: Source table name.
            primary_key_columns: Ordered primary key column names.

        Returns:
            None: Registry is updated as side effect.

        Raises:
            ValueError: Raised when no columns are given.
        """

        if not primary_key_columns:
            raise ValueError("primary_key_columns must not be empty")
        self._primary_keys_by_table[table.strip()] = tuple(primary_key_columns)

    def detection_row_key(self, change: ChangeEvent) -> str:
        """Return the routing key of the row a change event touches.

        Args:
            change: Change event.

        Returns:
            str: `<table>:<primary key>` key.

        Raises:
            ValueError: Raised when the row image lacks a primary key column.
        """

        primary_key_columns = self._primary_keys_by_table.get(change.table, ("id",))
        return f"{change.table}:{change.change_row_key(primary_key_columns)}"

    def detection_register_lane_route(self, table: str, aggregate_type: str, aggregate_column: str) -> None:
        """Route changes of a table by the aggregate they affect instead of by row.

        Args:
            table: Source table name.
            aggregate_type: Aggregate type shared by the routed tables.
            aggregate_column: Column of the row image holding the aggregate id.

        Returns:
            None: Registry is updated as side effect.

        Raises:
            ValueError: Raised when any argument is blank.
        """

        if not table.strip() or not aggregate_type.strip() or not aggregate_column.strip():
            raise ValueError("table, aggregate_type and aggregate_column must not be blank")
        self._lane_routes_by_table[table.strip()] = (aggregate_type.strip(), aggregate_column.strip())

    def detection_lane_key(self, change: ChangeEvent) -> str:
        """Return the lane key serializing every change that affects one aggregate.

        Tables without a lane route, and rows whose image lacks the aggregate
        column, fall back to the row key.

        Args:
            change: Change event.

        Returns:
            str: `<aggregate type>:<aggregate id>` or `<table>:<primary key>` key.

        Raises:
            ValueError: Raised when the fallback row key cannot be built.
        """

        lane_route = self._lane_routes_by_table.get(change.table)
        if lane_route is not None:
            aggregate_type, aggregate_column = lane_route
            aggregate_id = change.change_current_image().get(aggregate_column)
            if aggregate_id is not None:
                return f"{aggregate_type}:{aggregate_id}"
        return self.detection_row_key(change)

    def detection_detect(self, change: ChangeEvent) -> Iterator[DomainEvent]:
        """Lazily evaluate every rule registered for the change's table.

        Args:
            change: Change event.

        Returns:
            Iterator[DomainEvent]: Candidates in rule registration order.

        Raises:
            RuntimeError: Rule failures are isolated and never propagate.
        """

        for rule in self._rules_by_table.get(change.table, ()):
            try:
                yield from rule.evaluate(change)
            except Exception as error:  # pylint: disable=broad-exception-caught
                fault = DetectionFault(str(error), detector_name=rule.name)
                logger.error(
                    "detection fault in rule=%s table=%s position=%s: %s",
                    rule.name,
                    change.table,
                    change.source_position.position_token(),
                    fault.reason,
                    exc_info=error,
                )
                if self._fault_listener is not None:
                    self._fault_listener(rule.name, change, fault)
