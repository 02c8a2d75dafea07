"""Shared row-value normalization helpers.

Replication-log row images carry loosely typed values: decimals arrive as
strings or floats, dates as ISO text or epoch days, timestamps as epoch
milliseconds. These helpers keep comparison and serialization deterministic
across detection, validation and publishing.
"""

from __future__ import annotations

import base64
import binascii
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

_DOMAIN_VALUE_NULL_SENTINELS = frozenset({"", "-", "N/A", "null"})
_DOMAIN_VALUE_EPOCH = date(1970, 1, 1)


def domain_value_normalize_text(value: object | None) -> str | None:
    """Normalize one optional row value to stripped text.

    Args:
        value: Candidate row value.

    Returns:
        str | None: Normalized text, or None when missing or a null sentinel.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if value is None:
        return None

    normalized_value = str(value).strip()
    if normalized_value in _DOMAIN_VALUE_NULL_SENTINELS:
        return None
    return normalized_value


def domain_value_to_decimal(value: object | None) -> Decimal | None:
    """Convert one row value into `Decimal`.

    Args:
        value: Candidate numeric value (int, float, Decimal or numeric text).

    Returns:
        Decimal | None: Parsed decimal, or None when missing.

    Raises:
        ValueError: Raised when the value is present but not numeric.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))

    normalized_value = domain_value_normalize_text(value)
    if normalized_value is None:
        return None
    try:
        parsed_value = Decimal(normalized_value.replace(",", ""))
    except InvalidOperation as error:
        raise ValueError(f"value is not numeric: {value!r}") from error
    if not parsed_value.is_finite():
        raise ValueError(f"value is not finite: {value!r}")
    return parsed_value


def domain_value_decode_connect_decimal(encoded: object | None, scale: int) -> Decimal | None:
    """Decode a Kafka Connect `Decimal` (base64 big-endian two's complement unscaled value).

    Args:
        encoded: Base64 text as emitted by the JSON converter.
        scale: Decimal scale from the field schema.

    Returns:
        Decimal | None: Decoded value, or None when missing.

    Raises:
        ValueError: Raised when the text is not valid base64 or the scale is negative.
    """

    if encoded is None:
        return None
    if scale < 0:
        raise ValueError(f"decimal scale must be >= 0, got {scale}")
    try:
        raw_bytes = base64.b64decode(str(encoded), validate=True)
    except (binascii.Error, ValueError) as error:
        raise ValueError(f"value is not a base64 encoded decimal: {encoded!r}") from error
    unscaled_value = int.from_bytes(raw_bytes, byteorder="big", signed=True)
    return Decimal(unscaled_value).scaleb(-scale)


def domain_value_values_differ(left: object | None, right: object | None) -> bool:
    """Return whether two row values differ, treating numerically equal values as equal.

    Args:
        left: Value from the before image.
        right: Value from the after image.

    Returns:
        bool: True when the values differ.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if left is None and right is None:
        return False
    if left is None or right is None:
        return True
    if left == right:
        return False

    try:
        left_decimal = domain_value_to_decimal(left)
        right_decimal = domain_value_to_decimal(right)
    except ValueError:
        return domain_value_normalize_text(left) != domain_value_normalize_text(right)
    if left_decimal is not None and right_decimal is not None:
        return left_decimal != right_decimal
    return domain_value_normalize_text(left) != domain_value_normalize_text(right)


def domain_value_parse_epoch_millis(value: object) -> datetime:
    """Parse epoch milliseconds into a UTC timestamp.

    Args:
        value: Epoch milliseconds as int or numeric text.

    Returns:
        datetime: Timezone-aware UTC timestamp.

    Raises:
        ValueError: Raised when the value is not an integer timestamp.
    """

    if isinstance(value, bool):
        raise ValueError(f"invalid epoch milliseconds: {value!r}")
    try:
        epoch_millis = int(value)
    except (TypeError, ValueError) as error:
        raise ValueError(f"invalid epoch milliseconds: {value!r}") from error
    return datetime.fromtimestamp(epoch_millis / 1000, tz=timezone.utc)


def domain_value_to_iso_date(value: object | None) -> str | None:
    """Normalize one date-like row value to ISO `YYYY-MM-DD` text.

    Integers are treated as epoch days, the default Debezium encoding for DATE
    columns.

    Args:
        value: Candidate date value.

    Returns:
        str | None: ISO date text, or None when missing or unparseable.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, int):
        return (_DOMAIN_VALUE_EPOCH + timedelta(days=value)).isoformat()

    normalized_value = domain_value_normalize_text(value)
    if normalized_value is None:
        return None
    try:
        return date.fromisoformat(normalized_value[:10]).isoformat()
    except ValueError:
        return None
