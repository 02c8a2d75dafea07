"""Regression tests for the Debezium JSON-lines change-log reader."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from hr_event_publisher.adapters import END_OF_STREAM, DebeziumJsonLinesReader
from hr_event_publisher.detection import detection_build_default_registry
from hr_event_publisher.domain import ChangeOperation, SourcePosition


def _envelope(op: str, pos: int, before: dict | None, after: dict | None, wrapped: bool = False) -> str:
    """Render one Debezium envelope line.

    Args:
        op: Debezium operation code.
        pos: Binlog position.
        before: Before image.
        after: After image.
        wrapped: Wrap the envelope in a Kafka Connect `payload` field.

    Returns:
        str: JSON line.

    Raises:
        TypeError: Raised when images are not JSON serializable.
    """

    envelope = {
        "op": op,
        "before": before,
        "after": after,
        "source": {"table": "employees", "file": "mysql-bin.000003", "pos": pos, "row": 0, "ts_ms": 1760779800000},
        "ts_ms": 1760779800123,
    }
    if wrapped:
        envelope = {"schema": {}, "payload": envelope}
    return json.dumps(envelope)


def _write_log(tmp_path: Path, lines: list[str]) -> Path:
    """Write change log lines to a temp file.

    Args:
        tmp_path: Pytest temp directory.
        lines: JSON lines.

    Returns:
        Path: Change log path.

    Raises:
        OSError: Raised when the file cannot be written.
    """

    change_log_path = tmp_path / "changes.jsonl"
    change_log_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return change_log_path


def test_adapters_debezium_reader_maps_operations_and_skips_tombstones(tmp_path: Path) -> None:
    """Map Debezium op codes and skip tombstones and blank lines.

    Args:
        tmp_path: Pytest temp directory fixture.

    Returns:
        None: Assertions validate parsing.

    Raises:
        AssertionError: Raised when parsed change events are wrong.
    """

    change_log_path = _write_log(
        tmp_path,
        [
            _envelope("c", 100, None, {"id": 1, "status": "active"}),
            "null",
            "",
            _envelope("u", 200, {"id": 1, "status": "active"}, {"id": 1, "status": "suspended"}, wrapped=True),
            _envelope("d", 300, {"id": 1, "status": "suspended"}, None),
        ],
    )
    reader = DebeziumJsonLinesReader(change_log_path)
    reader.reader_seek(None)

    first_change = reader.reader_next()
    second_change = reader.reader_next()
    third_change = reader.reader_next()

    assert first_change.operation == ChangeOperation.CREATE
    assert first_change.source_position == SourcePosition("mysql-bin.000003", 100, 0)
    assert first_change.source_timestamp == datetime.fromtimestamp(1760779800, tz=timezone.utc)
    assert second_change.operation == ChangeOperation.UPDATE
    assert second_change.after["status"] == "suspended"
    assert third_change.operation == ChangeOperation.DELETE
    assert reader.reader_next() is END_OF_STREAM
    reader.reader_close()


def test_adapters_debezium_reader_seek_skips_processed_positions(tmp_path: Path) -> None:
    """Skip records at or before the seek position.

    Args:
        tmp_path: Pytest temp directory fixture.

    Returns:
        None: Assertions validate resume behavior.

    Raises:
        AssertionError: Raised when processed records are replayed.
    """

    change_log_path = _write_log(
        tmp_path,
        [_envelope("c", pos, None, {"id": pos}) for pos in (100, 200, 300)],
    )
    reader = DebeziumJsonLinesReader(change_log_path)

    reader.reader_seek(SourcePosition("mysql-bin.000003", 200, 0))

    assert reader.reader_next().source_position.log_offset == 300
    assert reader.reader_next() is END_OF_STREAM
    assert reader.reader_source_name() == "debezium_jsonl:changes.jsonl"
    reader.reader_close()


def test_adapters_debezium_reader_rejects_malformed_records(tmp_path: Path) -> None:
    """Raise ValueError for invalid JSON and unsupported operations.

    Args:
        tmp_path: Pytest temp directory fixture.

    Returns:
        None: Assertions validate malformed input handling.

    Raises:
        AssertionError: Raised when malformed records are accepted.
    """

    reader = DebeziumJsonLinesReader(_write_log(tmp_path, ["{not json", _envelope("t", 100, None, {"id": 1})]))
    reader.reader_seek(None)

    with pytest.raises(ValueError, match="line 1 is not valid JSON"):
        reader.reader_next()
    with pytest.raises(ValueError, match="unsupported op='t'"):
        reader.reader_next()
    reader.reader_close()


def test_adapters_debezium_reader_missing_file_raises_connection_error(tmp_path: Path) -> None:
    """Raise ConnectionError when the change log cannot be opened.

    Args:
        tmp_path: Pytest temp directory fixture.

    Returns:
        None: Assertions validate open failure mapping.

    Raises:
        AssertionError: Raised when open failure is not mapped.
    """

    reader = DebeziumJsonLinesReader(tmp_path / "missing.jsonl")

    with pytest.raises(ConnectionError, match="cannot be opened"):
        reader.reader_seek(None)


def test_adapters_debezium_reader_numbers_snapshot_rows_sharing_one_position(tmp_path: Path) -> None:
    """Give snapshot rows at one binlog position increasing ordinals that survive a resume.

    Args:
        tmp_path: Pytest temp directory fixture.

    Returns:
        None: Assertions validate ordinal assignment.

    Raises:
        AssertionError: Raised when snapshot rows collide or are replayed.
    """

    change_log_path = _write_log(
        tmp_path,
        [_envelope("r", 154, None, {"id": employee_id}) for employee_id in (1, 2, 3)] + [_envelope("c", 200, None, {"id": 4})],
    )
    reader = DebeziumJsonLinesReader(change_log_path)
    reader.reader_seek(None)

    positions = [reader.reader_next().source_position for _ in range(4)]

    assert positions == [
        SourcePosition("mysql-bin.000003", 154, 0),
        SourcePosition("mysql-bin.000003", 154, 0, event_ordinal=1),
        SourcePosition("mysql-bin.000003", 154, 0, event_ordinal=2),
        SourcePosition("mysql-bin.000003", 200, 0),
    ]
    assert positions == sorted(set(positions))

    reader.reader_seek(SourcePosition("mysql-bin.000003", 154, 0, event_ordinal=1))
    resumed_change = reader.reader_next()

    assert resumed_change.after == {"id": 3}
    assert resumed_change.source_position.event_ordinal == 2
    assert reader.reader_next().after == {"id": 4}
    assert reader.reader_next() is END_OF_STREAM
    reader.reader_close()


def _decimal_schema_envelope(pos: int, before: dict, after: dict) -> str:
    """Render a schema-carrying update whose salary uses precise decimal handling.

    Args:
        pos: Binlog position.
        before: Before image with base64 salary.
        after: After image with base64 salary.

    Returns:
        str: JSON line.

    Raises:
        TypeError: Raised when images are not JSON serializable.
    """

    row_fields = [
        {"type": "int64", "optional": False, "field": "id"},
        {"type": "string", "optional": True, "field": "position_id"},
        {
            "type": "bytes",
            "optional": True,
            "name": "org.apache.kafka.connect.data.Decimal",
            "version": 1,
            "parameters": {"scale": "2", "connect.decimal.precision": "12"},
            "field": "salary",
        },
    ]
    document = json.loads(_envelope("u", pos, before, after, wrapped=True))
    document["schema"] = {
        "type": "struct",
        "name": "hr.hr.employees.Envelope",
        "fields": [
            {"type": "struct", "optional": True, "name": "hr.hr.employees.Value", "field": "before", "fields": row_fields},
            {"type": "struct", "optional": True, "name": "hr.hr.employees.Value", "field": "after", "fields": row_fields},
            {"type": "string", "optional": False, "field": "op"},
        ],
    }
    return json.dumps(document)


def test_adapters_debezium_reader_decodes_precise_decimals_for_promotion_detection(tmp_path: Path) -> None:
    """Decode base64 DECIMAL columns so salary comparisons see real amounts.

    Args:
        tmp_path: Pytest temp directory fixture.

    Returns:
        None: Assertions validate decimal decoding end to end.

    Raises:
        AssertionError: Raised when salaries stay encoded or promotion is missed.
    """

    change_log_path = _write_log(
        tmp_path,
        [
            _decimal_schema_envelope(
                500,
                {"id": 42, "position_id": "IC3", "salary": "AknQ"},
                {"id": 42, "position_id": "IC4", "salary": "Aw1A"},
            )
        ],
    )
    reader = DebeziumJsonLinesReader(change_log_path)
    reader.reader_seek(None)

    change = reader.reader_next()
    reader.reader_close()

    assert change.before["salary"] == Decimal("1499.68")
    assert change.after["salary"] == Decimal("2000.00")
    candidates = list(detection_build_default_registry().detection_detect(change))
    assert [candidate.event_type for candidate in candidates] == ["EmployeePromoted"]
    assert candidates[0].payload["previousSalary"] == Decimal("1499.68")
    assert candidates[0].payload["newSalary"] == Decimal("2000.00")


def test_adapters_debezium_reader_rejects_undecodable_decimal(tmp_path: Path) -> None:
    """Raise ValueError naming the column when a precise decimal is not base64.

    Args:
        tmp_path: Pytest temp directory fixture.

    Returns:
        None: Assertions validate rejection.

    Raises:
        AssertionError: Raised when garbage decimals are accepted.
    """

    change_log_path = _write_log(
        tmp_path,
        [_decimal_schema_envelope(500, {"id": 42, "salary": "AknQ"}, {"id": 42, "salary": "not base64!"})],
    )
    reader = DebeziumJsonLinesReader(change_log_path)
    reader.reader_seek(None)

    with pytest.raises(ValueError, match="undecodable decimal column=salary"):
        reader.reader_next()
    reader.reader_close()
