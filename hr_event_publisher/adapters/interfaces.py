"""Typed interfaces for adapter-layer responsibilities."""

from typing import Final, Protocol

from hr_event_publisher.domain import ChangeEvent, SourcePosition


class EndOfStream:
    """Marker type returned by readers when no further change event is available."""

    def __repr__(self) -> str:
        return "END_OF_STREAM"


END_OF_STREAM: Final[EndOfStream] = EndOfStream()


class ChangeLogReaderPort(Protocol):
    """Port definition for reading captured row mutations in source order."""

    def reader_source_name(self) -> str:
        """Return reader source identifier for diagnostics.

        Returns:
            str: Human-readable source identifier.

        Raises:
            RuntimeError: Raised when source metadata is unavailable.
        """

    def reader_seek(self, position: SourcePosition | None) -> None:
        """Position the reader strictly after the given source position.

        Args:
            position: Last processed position, or None to start from the beginning.

        Returns:
            None: Reader state is updated as side effect.

        Raises:
            ConnectionError: Raised when the change log cannot be opened.
        """

    def reader_next(self) -> ChangeEvent | EndOfStream:
        """Return the next change event, or `END_OF_STREAM` when exhausted.

        Returns:
            ChangeEvent | EndOfStream: Next change event in source order.

        Raises:
            ValueError: Raised when a change-log record is malformed.
            ConnectionError: Raised when the change log cannot be read.
        """


class BusTransportPort(Protocol):
    """Port definition for at-least-once delivery to the event bus."""

    def bus_send(self, subject: str, body: bytes, event_id: str) -> None:
        """Send one serialized event and return after the bus acknowledged it.

        Args:
            subject: Bus subject, `events.<category>.<type>`.
            body: Serialized event bytes.
            event_id: Idempotency key forwarded to the bus.

        Returns:
            None: Returns only after acknowledgment.

        Raises:
            ConnectionError: Raised when the bus rejects or cannot receive the event.
            TimeoutError: Raised when acknowledgment does not arrive in time.
        """
