"""
Core domain module.

Contains the exception hierarchy, the presence directory and the relay
topologies. Nothing here performs I/O on its own.
"""

from commshub.core.exceptions import (
    CommsException,
    EditWindowExpiredError,
    MessageNotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ThreadNotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from commshub.core.presence import (
    InMemoryPresenceBackend,
    PresenceBackend,
    PresenceDirectory,
)
from commshub.core.relay_strategy import (
    GlobalBroadcastRelay,
    RelayStrategy,
    RoomScopedRelay,
    build_relay_strategy,
    room_for_thread,
    room_for_user,
)

__all__ = [
    # Exceptions
    "CommsException",
    "EditWindowExpiredError",
    "MessageNotFoundError",
    "PermissionDeniedError",
    "PersistenceError",
    "ThreadNotFoundError",
    "UnauthenticatedError",
    "ValidationError",
    # Presence
    "InMemoryPresenceBackend",
    "PresenceBackend",
    "PresenceDirectory",
    # Relay
    "GlobalBroadcastRelay",
    "RelayStrategy",
    "RoomScopedRelay",
    "build_relay_strategy",
    "room_for_thread",
    "room_for_user",
]
