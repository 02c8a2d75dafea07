"""Change-log reader over Debezium JSON-lines exports."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Final, TextIO

from hr_event_publisher.domain import ChangeEvent, ChangeOperation, SourcePosition
from hr_event_publisher.domain.values import domain_value_decode_connect_decimal, domain_value_parse_epoch_millis

from .interfaces import END_OF_STREAM, ChangeLogReaderPort, EndOfStream


class DebeziumJsonLinesReader(ChangeLogReaderPort):
    """Read Debezium MySQL change envelopes, one JSON document per line.

    Envelopes are accepted with or without the Kafka Connect `payload` wrapper.
    Tombstones (`null` lines) and blank lines are skipped. Records are expected
    in replication-log order; records at or before the seek position are skipped.

    Consecutive records sharing one binlog file, offset and row index (snapshot
    reads) get increasing `event_ordinal` values, counted from the start of the
    file on every seek so resumed runs number them the same way.

    DECIMAL columns in the default `precise` handling mode arrive as base64
    bytes and are decoded with the scale from the envelope `schema`. Envelopes
    written without a schema must use `decimal.handling.mode=string`.
    """

    _CONNECT_DECIMAL: Final[str] = "org.apache.kafka.connect.data.Decimal"
    _VARIABLE_SCALE_DECIMAL: Final[str] = "io.debezium.data.VariableScaleDecimal"

    _OPERATION_BY_CODE: Final[dict[str, ChangeOperation]] = {
        "c": ChangeOperation.CREATE,
        "u": ChangeOperation.UPDATE,
        "d": ChangeOperation.DELETE,
        "r": ChangeOperation.SNAPSHOT,
    }

    def __init__(self, change_log_path: str | Path):
        """Initialize reader.

        Args:
            change_log_path: Path to the JSON-lines change log.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when the path is blank.
        """

        if not str(change_log_path).strip():
            raise ValueError("change_log_path must not be blank")

        self._change_log_path = Path(change_log_path)
        self._handle: TextIO | None = None
        self._line_number = 0
        self._resume_after: SourcePosition | None = None
        self._previous_position: SourcePosition | None = None

    def reader_source_name(self) -> str:
        """Return stable reader source label.

        Returns:
            str: Source identifier.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return f"debezium_jsonl:{self._change_log_path.name}"

    def reader_seek(self, position: SourcePosition | None) -> None:
        """Reopen the change log and skip records up to and including `position`.

        Args:
            position: Last processed position, or None for the beginning.

        Returns:
            None: Reader state is updated as side effect.

        Raises:
            ConnectionError: Raised when the change log cannot be opened.
        """

        self.reader_close()
        try:
            self._handle = self._change_log_path.open("r", encoding="utf-8")
        except OSError as error:
            raise ConnectionError(f"change log cannot be opened path={self._change_log_path}") from error
        self._line_number = 0
        self._resume_after = position
        self._previous_position = None

    def reader_next(self) -> ChangeEvent | EndOfStream:
        """Return the next change event after the seek position.

        Returns:
            ChangeEvent | EndOfStream: Next change event, or `END_OF_STREAM`.

        Raises:
            ValueError: Raised when one record is malformed.
            ConnectionError: Raised when the change log cannot be read.
        """

        if self._handle is None:
            self.reader_seek(None)
        if self._handle is None:
            raise RuntimeError("change log handle is not open")

        while True:
            try:
                line = self._handle.readline()
            except OSError as error:
                raise ConnectionError(f"change log read failed path={self._change_log_path}") from error
            if not line:
                return END_OF_STREAM

            self._line_number += 1
            stripped_line = line.strip()
            if not stripped_line:
                continue

            try:
                document = json.loads(stripped_line)
            except json.JSONDecodeError as error:
                raise ValueError(f"change log line {self._line_number} is not valid JSON") from error

            change_event = self._reader_parse_envelope(document)
            if change_event is None:
                continue
            if self._resume_after is not None and change_event.source_position <= self._resume_after:
                continue
            return change_event

    def reader_close(self) -> None:
        """Close the underlying file handle if open."""

        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def _reader_parse_envelope(self, document: Any) -> ChangeEvent | None:
        """Map one decoded Debezium envelope into a change event.

        Args:
            document: Decoded JSON document.

        Returns:
            ChangeEvent | None: Parsed change event, or None for tombstones.

        Raises:
            ValueError: Raised when required envelope fields are missing or invalid.
        """

        if document is None:
            return None
        if not isinstance(document, dict):
            raise ValueError(f"change log line {self._line_number} is not a JSON object")

        envelope = document["payload"] if "payload" in document else document
        if envelope is None:
            return None
        if not isinstance(envelope, dict):
            raise ValueError(f"change log line {self._line_number} payload is not a JSON object")

        operation_code = str(envelope.get("op") or "").strip()
        operation = self._OPERATION_BY_CODE.get(operation_code)
        if operation is None:
            raise ValueError(f"change log line {self._line_number} has unsupported op={operation_code!r}")

        source = envelope.get("source")
        if not isinstance(source, dict):
            raise ValueError(f"change log line {self._line_number} is missing source block")

        table = str(source.get("table") or "").strip()
        log_file = str(source.get("file") or "").strip()
        if not table or not log_file:
            raise ValueError(f"change log line {self._line_number} is missing source table/file")

        try:
            source_position = SourcePosition(
                log_file=log_file,
                log_offset=int(source.get("pos")),
                row_index=int(source.get("row") or 0),
            )
        except (TypeError, ValueError) as error:
            raise ValueError(f"change log line {self._line_number} has invalid source position") from error
        previous_position = self._previous_position
        if previous_position is not None and source_position.position_same_record_run(previous_position):
            source_position = SourcePosition(
                log_file=source_position.log_file,
                log_offset=source_position.log_offset,
                row_index=source_position.row_index,
                event_ordinal=previous_position.event_ordinal + 1,
            )
        self._previous_position = source_position

        timestamp_millis = source.get("ts_ms", envelope.get("ts_ms"))
        source_timestamp = domain_value_parse_epoch_millis(timestamp_millis)

        try:
            return ChangeEvent(
                table=table,
                operation=operation,
                before=self._reader_decode_image(envelope.get("before"), document, "before"),
                after=self._reader_decode_image(envelope.get("after"), document, "after"),
                source_timestamp=source_timestamp,
                source_position=source_position,
            )
        except ValueError as error:
            raise ValueError(f"change log line {self._line_number}: {error}") from error

    def _reader_decode_image(self, image: Any, document: dict[str, Any], field_name: str) -> Any:
        """Decode binary-encoded DECIMAL columns of one row image.

        Args:
            image: Raw `before` or `after` image from the envelope.
            document: Whole decoded line, carrying the optional `schema` block.
            field_name: Envelope field the image came from.

        Returns:
            Any: Image with decimal columns decoded, or the raw image when no schema applies.

        Raises:
            ValueError: Raised when a decimal column cannot be decoded.
        """

        if not isinstance(image, dict) or "payload" not in document:
            return image
        column_schemas = self._reader_column_schemas(document.get("schema"), field_name)
        if not column_schemas:
            return image

        decoded_image = dict(image)
        for column, column_schema in column_schemas.items():
            value = decoded_image.get(column)
            if value is None:
                continue
            logical_name = column_schema.get("name")
            try:
                if logical_name == self._CONNECT_DECIMAL and isinstance(value, str):
                    parameters = column_schema.get("parameters") or {}
                    decoded_image[column] = domain_value_decode_connect_decimal(value, int(parameters.get("scale", 0)))
                elif logical_name == self._VARIABLE_SCALE_DECIMAL and isinstance(value, dict):
                    decoded_image[column] = domain_value_decode_connect_decimal(value.get("value"), int(value.get("scale", 0)))
            except (TypeError, ValueError) as error:
                raise ValueError(f"change log line {self._line_number} has undecodable decimal column={column}") from error
        return decoded_image

    @staticmethod
    def _reader_column_schemas(schema: Any, field_name: str) -> dict[str, dict[str, Any]]:
        """Return column schemas of the named envelope struct keyed by column name."""

        if not isinstance(schema, dict):
            return {}
        for envelope_field in schema.get("fields") or []:
            if not isinstance(envelope_field, dict) or envelope_field.get("field") != field_name:
                continue
            return {
                str(column_schema["field"]): column_schema
                for column_schema in envelope_field.get("fields") or []
                if isinstance(column_schema, dict) and "field" in column_schema
            }
        return {}
