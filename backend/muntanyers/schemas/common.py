"""
muntanyers Backend: Shared Response Schemas
===========================================

What:  Response models used by more than one route module.
"""

from typing import Optional

from pydantic import BaseModel, Field


class SuccessResponse(BaseModel):
    """Acknowledgement for mutations that return nothing else."""
    success: bool = Field(default=True)


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "account with ID '42' was not found",
            "details": {"resource": "account", "resource_id": "42"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring probes."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    database_backend: str = Field(description="SQL dialect in use: sqlite, postgresql")
    uptime_seconds: float = Field(description="Seconds since service started")
