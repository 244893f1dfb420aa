"""
Pydantic models for the pipeline and the HTTP surface.

All data contracts live here so that routes and services can
import lightweight schema objects without circular
dependencies.

For convenience every public model is re-exported from this
``__init__`` so that ``from problemfetch.schemas import
ExtractedDocument`` keeps working.
"""

from problemfetch.schemas.health import (
    CacheHealthResponse,
    ErrorResponse,
    HealthResponse,
)
from problemfetch.schemas.problem import ExtractedDocument

__all__ = [
    "CacheHealthResponse",
    "ErrorResponse",
    "ExtractedDocument",
    "HealthResponse",
]
