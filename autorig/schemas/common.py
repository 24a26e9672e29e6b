"""
Common Schemas

Shared response models for health, status, and error bodies.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class RootResponse(BaseModel):
    """Response model for the / endpoint."""

    message: str = Field(default="AutoRig Backend API Running")


class HealthResponse(BaseModel):
    """Response model for /health and /api/v1/health endpoints."""

    status: str = Field(
        default="ok",
        description="Service health status"
    )
    time: str = Field(
        description="Current server time (ISO 8601 format)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "status": "ok",
                "time": "2024-01-15T10:30:00Z"
            }
        }


class DetectorStatusResponse(BaseModel):
    """Response model for /api/v1/detectors endpoint."""

    available: bool = Field(description="Whether live detection is configured")
    detectors: List[str] = Field(default_factory=list, description="Configured detector kinds")
    poll_interval: Optional[float] = Field(default=None, description="Seconds between polls")
    max_attempts: Optional[int] = Field(default=None, description="Polls per job")
    max_wait_seconds: Optional[float] = Field(default=None, description="Upper bound on polling per job")
    requests_processed: int = Field(default=0, description="Requests served since startup")
    fallback_count: int = Field(default=0, description="Requests served from fallback detection")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error message")
    type: Optional[str] = Field(default=None, description="Error type")
    fallback: Optional[bool] = Field(default=None, description="Set on processing failures")
    details: Optional[Any] = Field(default=None, description="Additional error details")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "No file uploaded",
                "type": "UploadError",
            }
        }


__all__ = [
    "RootResponse",
    "HealthResponse",
    "DetectorStatusResponse",
    "ErrorResponse",
]
