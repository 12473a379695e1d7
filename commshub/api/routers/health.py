"""
Health check API endpoints.

Routes: GET /health, GET /health/presence

Dependencies: fastapi, commshub.realtime
System role: Health check HTTP API
"""

from fastapi import APIRouter, Depends

from commshub.api.deps.dependencies import get_relay_server
from commshub.models.common import HealthResponse, PresenceHealthResponse
from commshub.realtime.server import RelayServer

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check."""
    return HealthResponse(status="healthy", message="Relay Healthy")


@router.get("/presence", response_model=PresenceHealthResponse)
async def health_check_presence(
    relay: RelayServer = Depends(get_relay_server),
) -> PresenceHealthResponse:
    """Presence directory summary."""
    backend_status = relay.presence.backend.health_check()
    return PresenceHealthResponse(
        status=backend_status.get("status", "unknown"),
        online_users=relay.online_count,
        relay_mode=relay.strategy.mode.value,
    )
