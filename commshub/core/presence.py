"""
Presence directory for connected users.

Tracks which socket connections belong to which user. A user is online
iff at least one of their connections is registered. Storage is delegated to
a PresenceBackend so a multi-instance deployment can swap the in-memory
backend for a shared store.

Dependencies: None (pure domain layer)
System role: Presence state for the relay server
"""

import threading
from abc import ABC, abstractmethod


class PresenceBackend(ABC):
    """
    Abstract storage for user -> connection sets.

    Implementations must make add/remove atomic with respect to the
    emptiness check they report back.
    """

    @abstractmethod
    def add(self, user_id: str, sid: str) -> bool:
        """Register sid for user. Returns True if the user had no connections before."""
        ...

    @abstractmethod
    def remove(self, user_id: str, sid: str) -> bool:
        """Unregister sid. Returns True if the user has no connections left."""
        ...

    @abstractmethod
    def connections(self, user_id: str) -> frozenset[str]:
        """Return the connection ids currently registered for a user."""
        ...

    @abstractmethod
    def users(self) -> list[str]:
        """Return every user with at least one connection."""
        ...

    def health_check(self) -> dict[str, str]:
        """Check backend health. Override for backend-specific checks."""
        return {"status": "healthy", "backend": self.__class__.__name__}


class InMemoryPresenceBackend(PresenceBackend):
    """
    Process-local presence storage.

    State is lost on restart; clients re-announce on reconnect. The lock
    keeps add/remove consistent if the host ever runs handlers on threads.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def add(self, user_id: str, sid: str) -> bool:
        with self._lock:
            sids = self._connections.get(user_id)
            if sids is None:
                self._connections[user_id] = {sid}
                return True
            sids.add(sid)
            return False

    def remove(self, user_id: str, sid: str) -> bool:
        with self._lock:
            sids = self._connections.get(user_id)
            if sids is None:
                return False
            sids.discard(sid)
            if sids:
                return False
            del self._connections[user_id]
            return True

    def connections(self, user_id: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._connections.get(user_id, ()))

    def users(self) -> list[str]:
        with self._lock:
            return list(self._connections)


class PresenceDirectory:
    """
    Presence directory used by the relay server.

    Wraps a PresenceBackend with the operations the server needs. Removing
    an unknown connection and re-adding a known one are no-ops.
    """

    def __init__(self, backend: PresenceBackend | None = None) -> None:
        """
        Initialize directory.

        Args:
            backend: Storage backend (defaults to InMemoryPresenceBackend)
        """
        self.backend = backend or InMemoryPresenceBackend()

    def add(self, user_id: str, sid: str) -> bool:
        """
        Register a connection for a user.

        Args:
            user_id: Owning user identifier
            sid: Socket identifier

        Returns:
            bool: True if the user just came online
        """
        return self.backend.add(user_id, sid)

    def remove(self, user_id: str, sid: str) -> bool:
        """
        Unregister a connection.

        Args:
            user_id: Owning user identifier
            sid: Socket identifier

        Returns:
            bool: True if the user just went offline
        """
        return self.backend.remove(user_id, sid)

    def is_online(self, user_id: str) -> bool:
        """Whether the user has at least one open connection."""
        return bool(self.backend.connections(user_id))

    def connections(self, user_id: str) -> frozenset[str]:
        """Connection ids registered for the user."""
        return self.backend.connections(user_id)

    def snapshot(self) -> list[str]:
        """
        Current online set.

        Returns:
            list[str]: Sorted online user ids
        """
        return sorted(self.backend.users())

    def __len__(self) -> int:
        return len(self.backend.users())
