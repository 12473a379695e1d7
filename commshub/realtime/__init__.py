"""Socket.IO presence and relay server."""

from commshub.realtime.server import RelayServer, create_socket_server, extract_identity

__all__ = ["RelayServer", "create_socket_server", "extract_identity"]
