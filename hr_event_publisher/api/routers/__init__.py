"""API router package for endpoint composition."""

from .health import api_create_health_router
from .pipeline import api_create_pipeline_router, api_serialize_dead_letter_record

__all__ = ["api_create_health_router", "api_create_pipeline_router", "api_serialize_dead_letter_record"]
