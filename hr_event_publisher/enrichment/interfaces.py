"""Typed interfaces for enrichment-layer responsibilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Protocol


class ReferenceNotFound:
    """Marker type returned when the reference store has no row for a key."""

    def __repr__(self) -> str:
        return "REFERENCE_NOT_FOUND"


REFERENCE_NOT_FOUND: Final[ReferenceNotFound] = ReferenceNotFound()


@dataclass(frozen=True)
class EnrichmentLookup:
    """One payload field resolved against the reference store.

    Attributes:
        source_key: Payload key holding the reference code.
        entity_type: Reference entity kind (`position`, `department`, `employee`).
        target_key: Payload key receiving the resolved value.
    """

    source_key: str
    entity_type: str
    target_key: str


class ReferenceReadModelPort(Protocol):
    """Port definition for read-only reference lookups."""

    def reference_lookup(self, entity_type: str, key: str) -> str | ReferenceNotFound:
        """Resolve one reference code.

        Args:
            entity_type: Reference entity kind.
            key: Reference code.

        Returns:
            str | ReferenceNotFound: Resolved display value or `REFERENCE_NOT_FOUND`.

        Raises:
            ConnectionError: Raised when the reference store cannot be reached.
            ValueError: Raised when the entity type is not supported.
        """
