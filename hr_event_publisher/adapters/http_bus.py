"""HTTP event-bus transport adapter."""

from __future__ import annotations

import socket
from typing import Final
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from hr_event_publisher.domain import PublishFailed

from .interfaces import BusTransportPort


class HttpBusTransport(BusTransportPort):
    """Bus transport posting each event to `<base_url>/<subject>`.

    A 2xx response is the delivery acknowledgment. The `Event-Id` header lets
    the bus drop redeliveries of the same event.
    """

    _USER_AGENT: Final[str] = "hr-event-publisher/1.0 (Python/urllib.request)"

    def __init__(self, base_url: str, request_timeout_seconds: float = 10.0):
        """Initialize HTTP bus transport.

        Args:
            base_url: Bus ingress base URL.
            request_timeout_seconds: Per-request timeout in seconds.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when config values are invalid.
        """

        normalized_base_url = base_url.strip()
        if not normalized_base_url:
            raise ValueError("base_url must not be blank")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._base_url = normalized_base_url.rstrip("/")
        self._request_timeout_seconds = request_timeout_seconds

    def bus_send(self, subject: str, body: bytes, event_id: str) -> None:
        """POST one event and return once the bus acknowledged it.

        Args:
            subject: Bus subject.
            body: Serialized event bytes.
            event_id: Idempotency key.

        Returns:
            None: Returns only after a 2xx response.

        Raises:
            ValueError: Raised when subject or event id is blank.
            PublishFailed: Raised for transport failures and non-success HTTP status.
            TimeoutError: Raised when the request times out.
        """

        normalized_subject = subject.strip()
        if not normalized_subject:
            raise ValueError("subject must not be blank")
        if not event_id.strip():
            raise ValueError("event_id must not be blank")

        request = Request(
            f"{self._base_url}/{quote(normalized_subject, safe='.')}",
            data=bytes(body),
            method="POST",
            headers={
                "User-Agent": self._USER_AGENT,
                "Content-Type": "application/json",
                "Event-Id": event_id,
            },
        )
        try:
            with urlopen(request, timeout=self._request_timeout_seconds) as response:
                status_code = int(response.getcode() or 200)
        except TimeoutError as error:
            raise TimeoutError(f"bus request timed out subject={normalized_subject}") from error
        except HTTPError as error:
            raise PublishFailed(f"bus returned HTTP {error.code} subject={normalized_subject}") from error
        except URLError as error:
            if isinstance(error.reason, (TimeoutError, socket.timeout)):
                raise TimeoutError(f"bus request timed out subject={normalized_subject}") from error
            raise PublishFailed(f"bus request failed subject={normalized_subject}") from error

        if status_code >= 300:
            raise PublishFailed(f"bus returned HTTP {status_code} subject={normalized_subject}")
