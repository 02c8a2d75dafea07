"""Enrichment layer package for reference-data resolution."""

from .cache import ReadThroughReferenceCache
from .interfaces import REFERENCE_NOT_FOUND, EnrichmentLookup, ReferenceNotFound, ReferenceReadModelPort
from .service import DEFAULT_ENRICHMENT_LOOKUPS, EnrichmentService

__all__ = [
    "REFERENCE_NOT_FOUND",
    "ReferenceNotFound",
    "ReferenceReadModelPort",
    "EnrichmentLookup",
    "ReadThroughReferenceCache",
    "EnrichmentService",
    "DEFAULT_ENRICHMENT_LOOKUPS",
]
