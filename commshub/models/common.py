"""
Common HTTP request/response models.

Schemas for the relay's HTTP side-channel.

Dependencies: pydantic
System role: Common API response structures
"""

from typing import Any

from pydantic import BaseModel, Field


class BroadcastRequest(BaseModel):
    """Server-to-server fan-out request; both fields are checked by the route."""

    event: str | None = Field(default=None, description="Socket event name to emit")
    payload: Any = Field(default=None, description="Event payload forwarded verbatim")


class BroadcastResponse(BaseModel):
    """Successful broadcast acknowledgement."""

    success: bool = True


class ErrorResponse(BaseModel):
    """Error response schema."""

    error: str = Field(description="Error message")


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    message: str


class PresenceHealthResponse(BaseModel):
    """Presence directory summary."""

    status: str
    online_users: int
    relay_mode: str
