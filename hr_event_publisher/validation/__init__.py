"""Validation layer package for enriched-event invariants."""

from .schemas import DEFAULT_EVENT_SCHEMAS, EventSchema
from .service import ValidationService

__all__ = ["DEFAULT_EVENT_SCHEMAS", "EventSchema", "ValidationService"]
