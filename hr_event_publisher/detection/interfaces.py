"""Typed interfaces for detection-layer responsibilities."""

from typing import Iterable, Protocol

from hr_event_publisher.domain import ChangeEvent, DomainEvent


class DetectorRule(Protocol):
    """Pure mapping from one change event to candidate domain events.

    Rules own no mutable state, so they can be reordered and replayed freely.
    """

    name: str

    def evaluate(self, change: ChangeEvent) -> Iterable[DomainEvent]:
        """Evaluate one change event.

        Args:
            change: Immutable change event.

        Returns:
            Iterable[DomainEvent]: Zero or more candidate events.

        Raises:
            ValueError: Raised when the row image violates the rule's contract.
        """


class DetectionFaultListener(Protocol):
    """Callback invoked when one rule raises during evaluation."""

    def __call__(self, rule_name: str, change: ChangeEvent, error: Exception) -> None:
        """Observe one isolated rule failure.

        Args:
            rule_name: Name of the failing rule.
            change: Change event being evaluated.
            error: Raised exception.

        Returns:
            None: Listener is called for side effects only.

        Raises:
            RuntimeError: Listeners must not raise.
        """
