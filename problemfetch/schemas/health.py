"""Health check and error response models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Returned by the health-check endpoint."""

    status: str = Field(
        ...,
        description="Service health status",
    )
    version: str = Field(
        ...,
        description="Application version",
    )


class ErrorResponse(BaseModel):
    """Returned when a problem cannot be resolved."""

    error: str = Field(
        ...,
        description="Machine-readable error kind",
    )
    message: str = Field(
        ...,
        description="Human-readable explanation",
    )


class CacheHealthResponse(BaseModel):
    """Returned by the problem-cache readiness probe."""

    status: str = Field(
        ...,
        description="healthy, degraded or unhealthy",
    )
    backend: str = Field(
        ...,
        description="Configured cache backend",
    )
    message: str = Field(
        ...,
        description="Human-readable detail",
    )
