"""
PlaceMarker API: Shared Schemas
===============================

What:  Error body returned by every exception handler, and the health report.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error body.

    Example:
        {
            "error": "validation_error",
            "message": "Search radius must be a positive number of meters, got -5",
            "details": {"field": "search_radius"},
            "request_id": "1f2e3d4c"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Local store connectivity: connected, disconnected")
    notes: str = Field(description="Remote notes: available, unavailable, local")
    discovery: str = Field(description="Place discovery: enabled, disabled")
    saved_places: int = Field(description="Number of places currently saved")
    uptime_seconds: float = Field(description="Seconds since service started")
