"""Idempotent publisher writing the durable log before bus delivery."""

from __future__ import annotations

import logging

from hr_event_publisher.adapters.interfaces import BusTransportPort
from hr_event_publisher.db.interfaces import DurableEventLogPort
from hr_event_publisher.domain import DomainEvent

from .interfaces import EventPublisherPort, PublishOutcome
from .serialization import publishing_build_log_record, publishing_serialize_event

logger = logging.getLogger(__name__)


class IdempotentPublisher(EventPublisherPort):
    """Publish each event id to the bus with at-most-once effect.

    The durable log row is written first and keyed by event id. A row that is
    already present and marked delivered short-circuits to `duplicate_ignored`.
    A present but undelivered row means an earlier attempt failed between the
    log write and the bus acknowledgment, so the send is repeated and the bus
    drops the redelivery by its `Event-Id`.
    """

    def __init__(self, event_log: DurableEventLogPort, bus_transport: BusTransportPort):
        """Initialize publisher.

        Args:
            event_log: Durable deduplicating event log.
            bus_transport: Event bus transport.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when required dependencies are missing.
        """

        if event_log is None:
            raise ValueError("event_log must not be None")
        if bus_transport is None:
            raise ValueError("bus_transport must not be None")

        self._event_log = event_log
        self._bus_transport = bus_transport

    def publish(self, event: DomainEvent) -> PublishOutcome:
        """Publish one validated event.

        Args:
            event: Validated domain event.

        Returns:
            PublishOutcome: `published`, `duplicate_ignored`, or `failed(reason)`.

        Raises:
            RuntimeError: This method reports failures through the outcome instead.
        """

        try:
            log_record = publishing_build_log_record(event)
            body = publishing_serialize_event(event)
        except TypeError as error:
            return PublishOutcome.failed(f"serialization failed: {error}")

        try:
            insert_result = self._event_log.event_log_insert_if_absent(event.event_id, log_record)
        except (RuntimeError, ConnectionError) as error:
            logger.warning("durable log write failed event_id=%s error=%s", event.event_id, error)
            return PublishOutcome.failed(f"durable log write failed: {error}")

        if insert_result.event_log_already_present() and insert_result.delivered:
            logger.info("duplicate event ignored event_id=%s event_type=%s", event.event_id, event.event_type)
            return PublishOutcome.duplicate_ignored()

        try:
            self._bus_transport.bus_send(event.event_subject(), body, str(event.event_id))
        except (ConnectionError, TimeoutError) as error:
            logger.warning("bus send failed event_id=%s subject=%s error=%s", event.event_id, event.event_subject(), error)
            return PublishOutcome.failed(f"bus send failed: {error}")

        try:
            self._event_log.event_log_mark_delivered(event.event_id)
        except (RuntimeError, ConnectionError, LookupError) as error:
            logger.warning("delivery mark failed event_id=%s error=%s", event.event_id, error)
            return PublishOutcome.failed(f"delivery mark failed: {error}")

        logger.info(
            "event published event_id=%s subject=%s aggregate_id=%s",
            event.event_id,
            event.event_subject(),
            event.aggregate_id,
        )
        return PublishOutcome.published()
