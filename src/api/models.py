"""
Response models for the health API.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall monitor status: healthy, degraded, starting or stopped",
    )
    gateway_connected: bool = Field(
        default=False,
        description="Whether the gateway feed is currently connected",
    )
    last_poll_at: float | None = Field(
        default=None,
        description="Epoch seconds of the last completed REST poll",
    )
    tracked_messages: int = Field(
        default=0,
        description="Messages with alert state in the store",
    )
    store_capacity: int = Field(
        default=0,
        description="Maximum number of tracked messages",
    )
    alerts_fired: int = Field(
        default=0,
        description="Tier firings since startup",
    )
    uptime_seconds: float = Field(
        default=0.0,
        description="Seconds since the monitor started",
    )
