"""
Relay process entry point.

Assembles the FastAPI side-channel and the Socket.IO relay server into one
ASGI application and launches uvicorn.

Dependencies: fastapi, python-socketio, uvicorn
System role: Composition root and server launch
"""

import logging
from contextlib import asynccontextmanager

import socketio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from commshub.api.routers import broadcast_router, health_router
from commshub.boundary.db.connection import dispose_engine
from commshub.configs import Settings, get_settings
from commshub.observability.logger import configure_logging
from commshub.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware
from commshub.realtime.server import RelayServer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    logger = logging.getLogger("uvicorn")

    # Startup
    relay: RelayServer = app.state.relay_server
    logger.info(
        "Comms relay ready",
        extra={"relay_mode": relay.strategy.mode.value},
    )

    yield

    # Shutdown
    await dispose_engine()
    logger.info("Database connections closed")


def create_app(
    settings: Settings | None = None,
    relay_server: RelayServer | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI side-channel.

    Args:
        settings: Application settings (cached settings if None)
        relay_server: Relay server to expose (built from settings if None)

    Returns:
        FastAPI: Configured application with relay_server on app.state
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Comms Realtime Relay",
        description="Presence and message relay for CRM threads",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.relay_server = relay_server or RelayServer(settings.realtime)

    cors_origins = settings.realtime.resolve_cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if cors_origins == "*" else cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability middleware
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # Broadcast stays at the root path used by existing producers
    app.include_router(broadcast_router)
    app.include_router(health_router, prefix="/api/v1")

    return app


def create_asgi_app(settings: Settings | None = None) -> socketio.ASGIApp:
    """
    Wrap the FastAPI app with the Socket.IO ASGI app.

    Socket.IO handles both Engine.IO polling and WebSocket upgrades under
    the configured path; every other request falls through to FastAPI.

    Args:
        settings: Application settings (cached settings if None)

    Returns:
        socketio.ASGIApp: Combined ASGI application
    """
    settings = settings or get_settings()
    fastapi_app = create_app(settings)
    relay: RelayServer = fastapi_app.state.relay_server

    return socketio.ASGIApp(
        relay.sio,
        other_asgi_app=fastapi_app,
        socketio_path=settings.realtime.socketio_path.strip("/"),
    )


app = create_asgi_app()


if __name__ == "__main__":
    realtime = get_settings().realtime
    uvicorn.run(
        "commshub.main:app",
        host=realtime.host,
        port=realtime.port,
    )
