"""Regression tests for change-event contracts, position tokens and identity derivation."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from hr_event_publisher.domain import (
    ChangeEvent,
    ChangeOperation,
    SourcePosition,
    domain_derive_correlation_id,
    domain_derive_event_id,
)
from hr_event_publisher.domain.values import (
    domain_value_decode_connect_decimal,
    domain_value_parse_epoch_millis,
    domain_value_to_iso_date,
    domain_value_values_differ,
)


def _build_change(operation: ChangeOperation, before: dict | None, after: dict | None) -> ChangeEvent:
    """Build a change event for the employees table.

    Args:
        operation: Mutation kind.
        before: Before image.
        after: After image.

    Returns:
        ChangeEvent: Change event at a fixed position.

    Raises:
        ValueError: Raised by ChangeEvent when images do not fit the operation.
    """

    return ChangeEvent(
        table="employees",
        operation=operation,
        before=before,
        after=after,
        source_timestamp=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        source_position=SourcePosition(log_file="mysql-bin.000003", log_offset=4512, row_index=1),
    )


def test_domain_position_token_parses_back_to_equal_position() -> None:
    """Parse a rendered position token back into an equal position.

    Returns:
        None: Assertions validate token format.

    Raises:
        AssertionError: Raised when token rendering or parsing is inconsistent.
    """

    position = SourcePosition(log_file="mysql-bin.000003", log_offset=4512, row_index=2)

    token = position.position_token()

    assert token == "mysql-bin.000003:4512:2"
    assert SourcePosition.position_parse(token) == position

    snapshot_position = SourcePosition("mysql-bin.000003", 154, 0, event_ordinal=2)
    assert snapshot_position.position_token() == "mysql-bin.000003:154:0#2"
    assert SourcePosition.position_parse("mysql-bin.000003:154:0#2") == snapshot_position


@pytest.mark.parametrize(
    "token",
    ["", "mysql-bin.000003", "mysql-bin.000003:abc:0", ":12:0", "mysql-bin.000003:154:0#x", "mysql-bin.000003:154:0#0"],
)
def test_domain_position_parse_rejects_malformed_tokens(token: str) -> None:
    """Reject tokens that do not carry file, offset and row index.

    Args:
        token: Malformed token.

    Returns:
        None: Assertions validate parse failure.

    Raises:
        AssertionError: Raised when malformed token is accepted.
    """

    with pytest.raises(ValueError, match="malformed source position"):
        SourcePosition.position_parse(token)


def test_domain_positions_order_by_file_then_offset_then_row() -> None:
    """Order positions lexically by file, then numerically by offset, row and ordinal.

    Returns:
        None: Assertions validate total ordering.

    Raises:
        AssertionError: Raised when ordering is wrong.
    """

    positions = [
        SourcePosition("mysql-bin.000004", 10, 0),
        SourcePosition("mysql-bin.000003", 900, 1),
        SourcePosition("mysql-bin.000003", 900, 0, event_ordinal=1),
        SourcePosition("mysql-bin.000003", 900, 0),
        SourcePosition("mysql-bin.000003", 120, 5),
    ]

    assert sorted(positions) == [
        SourcePosition("mysql-bin.000003", 120, 5),
        SourcePosition("mysql-bin.000003", 900, 0),
        SourcePosition("mysql-bin.000003", 900, 0, event_ordinal=1),
        SourcePosition("mysql-bin.000003", 900, 1),
        SourcePosition("mysql-bin.000004", 10, 0),
    ]


def test_domain_change_event_rejects_images_that_do_not_fit_operation() -> None:
    """Reject update without before image and delete without before image.

    Returns:
        None: Assertions validate constructor guards.

    Raises:
        AssertionError: Raised when invalid change events are accepted.
    """

    with pytest.raises(ValueError, match="update change event requires"):
        _build_change(ChangeOperation.UPDATE, None, {"id": 1})
    with pytest.raises(ValueError, match="delete change event requires"):
        _build_change(ChangeOperation.DELETE, None, {"id": 1})
    with pytest.raises(ValueError, match="at least one"):
        _build_change(ChangeOperation.CREATE, None, None)


def test_domain_change_event_images_are_read_only() -> None:
    """Freeze row images so detector rules cannot mutate them.

    Returns:
        None: Assertions validate immutability.

    Raises:
        AssertionError: Raised when row images can be mutated.
    """

    source_image = {"id": 7, "status": "active"}
    change = _build_change(ChangeOperation.CREATE, None, source_image)
    source_image["status"] = "terminated"

    assert change.after["status"] == "active"
    with pytest.raises(TypeError):
        change.after["status"] = "terminated"  # type: ignore[index]


def test_domain_causation_id_uses_delete_before_image() -> None:
    """Build the causation id from the before image when the row was deleted.

    Returns:
        None: Assertions validate causation id format.

    Raises:
        AssertionError: Raised when causation id is wrong.
    """

    change = _build_change(ChangeOperation.DELETE, {"id": 42, "status": "active"}, None)

    assert change.change_row_key() == "42"
    assert change.change_causation_id() == "employees/42@mysql-bin.000003:4512:1"


def test_domain_event_id_is_deterministic_per_rule_and_type() -> None:
    """Derive identical ids for identical inputs and distinct ids otherwise.

    Returns:
        None: Assertions validate replay-safe identity.

    Raises:
        AssertionError: Raised when id derivation is not deterministic.
    """

    causation_id = "employees/42@mysql-bin.000003:4512:1"

    first_id = domain_derive_event_id(causation_id, "employees.promoted", "EmployeePromoted")
    second_id = domain_derive_event_id(causation_id, "employees.promoted", "EmployeePromoted")
    other_rule_id = domain_derive_event_id(causation_id, "employees.transferred", "EmployeePromoted")

    assert first_id == second_id
    assert first_id != other_rule_id
    assert domain_derive_correlation_id(causation_id) == domain_derive_correlation_id(causation_id)
    with pytest.raises(ValueError, match="detector_name must not be blank"):
        domain_derive_event_id(causation_id, " ", "EmployeePromoted")


def test_domain_values_compare_numbers_by_value() -> None:
    """Treat numerically equal row values as unchanged.

    Returns:
        None: Assertions validate value comparison.

    Raises:
        AssertionError: Raised when comparison is wrong.
    """

    assert domain_value_values_differ("120000.00", 120000) is False
    assert domain_value_values_differ("IC3", "IC4") is True
    assert domain_value_values_differ(None, "IC4") is True
    assert domain_value_values_differ(None, None) is False


def test_domain_values_parse_debezium_encodings() -> None:
    """Parse epoch-millisecond timestamps and epoch-day dates.

    Returns:
        None: Assertions validate value parsing.

    Raises:
        AssertionError: Raised when parsing is wrong.
    """

    assert domain_value_parse_epoch_millis(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert domain_value_to_iso_date(1) == "1970-01-02"
    assert domain_value_to_iso_date("2026-10-18T00:00:00Z") == "2026-10-18"
    assert domain_value_to_iso_date("not-a-date") is None
    with pytest.raises(ValueError, match="invalid epoch milliseconds"):
        domain_value_parse_epoch_millis("soon")


def test_domain_values_decode_connect_decimals() -> None:
    """Decode base64 two's-complement unscaled values with the schema scale.

    Returns:
        None: Assertions validate decimal decoding.

    Raises:
        AssertionError: Raised when decoding is wrong.
    """

    assert domain_value_decode_connect_decimal("AknQ", 2) == Decimal("1499.68")
    assert domain_value_decode_connect_decimal("/5w=", 2) == Decimal("-1.00")
    assert domain_value_decode_connect_decimal(None, 2) is None
    with pytest.raises(ValueError, match="not a base64 encoded decimal"):
        domain_value_decode_connect_decimal("12.50", 2)
    with pytest.raises(ValueError, match="scale must be >= 0"):
        domain_value_decode_connect_decimal("AknQ", -1)
