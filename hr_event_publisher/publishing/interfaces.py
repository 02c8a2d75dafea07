"""Typed contracts for publishing-layer responsibilities."""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from hr_event_publisher.domain import DomainEvent


class PublishStatus(str, Enum):
    """Outcome kind of one publish call."""

    PUBLISHED = "published"
    DUPLICATE_IGNORED = "duplicate_ignored"
    FAILED = "failed"


@dataclass(frozen=True)
class PublishOutcome:
    """Result contract for one publish call.

    Attributes:
        status: Outcome kind.
        reason: Failure reason, set only for `failed`.
    """

    status: PublishStatus
    reason: str | None = None

    @classmethod
    def published(cls) -> "PublishOutcome":
        return cls(status=PublishStatus.PUBLISHED)

    @classmethod
    def duplicate_ignored(cls) -> "PublishOutcome":
        return cls(status=PublishStatus.DUPLICATE_IGNORED)

    @classmethod
    def failed(cls, reason: str) -> "PublishOutcome":
        return cls(status=PublishStatus.FAILED, reason=reason)

    def outcome_is_terminal_success(self) -> bool:
        """Return whether the event needs no further publish attempts."""

        return self.status in (PublishStatus.PUBLISHED, PublishStatus.DUPLICATE_IGNORED)


class EventPublisherPort(Protocol):
    """Port definition for exactly-once-effect event publishing."""

    def publish(self, event: DomainEvent) -> PublishOutcome:
        """Publish one validated event.

        Args:
            event: Validated domain event.

        Returns:
            PublishOutcome: Published, duplicate, or retryable failure.

        Raises:
            RuntimeError: Implementations report failures through the outcome instead.
        """
