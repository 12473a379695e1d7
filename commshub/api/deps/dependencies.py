"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: fastapi, commshub.realtime
System role: DI container for the HTTP side-channel
"""

from fastapi import Request

from commshub.realtime.server import RelayServer


def get_relay_server(request: Request) -> RelayServer:
    """
    Get the relay server bound to the running application.

    Args:
        request: Incoming request (carries app.state)

    Returns:
        RelayServer: Server created by the composition root
    """
    return request.app.state.relay_server
