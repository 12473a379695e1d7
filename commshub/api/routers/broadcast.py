"""
Broadcast API endpoint.

Routes: POST /broadcast

Lets another backend process push an event to every connected socket
without holding a socket connection itself.

Dependencies: fastapi, commshub.realtime
System role: Server-to-server fan-out HTTP API
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from commshub.api.deps.dependencies import get_relay_server
from commshub.models.common import BroadcastRequest, BroadcastResponse, ErrorResponse
from commshub.realtime.server import RelayServer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["broadcast"])


@router.post(
    "/broadcast",
    response_model=BroadcastResponse,
    responses={400: {"model": ErrorResponse}},
)
async def broadcast(
    body: BroadcastRequest | None = None,
    relay: RelayServer = Depends(get_relay_server),
):
    """
    Emit `{event, payload}` to all connected sockets.

    Returns:
        200 {"success": true}, or 400 {"error": ...} when event or payload is missing
    """
    if body is None or not body.event or body.payload is None:
        logger.warning("Rejected broadcast with missing event or payload")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(error="Missing event or payload").model_dump(),
        )

    await relay.broadcast(body.event, body.payload)
    return BroadcastResponse()
