"""
Relay topologies.

A deployment relays thread events either to the thread's room
(room-scoped) or to every connected socket (global broadcast, clients
filter by threadId). The relay server delegates room handling and
fan-out to one of these strategies, selected from configuration.

Dependencies: socketio (AsyncServer interface)
System role: Fan-out policy for the relay server
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from commshub.configs.realtime import RelayMode

logger = logging.getLogger(__name__)


def room_for_thread(thread_id: str) -> str:
    return f"thread:{thread_id}"


def room_for_user(user_id: str) -> str:
    return f"user:{user_id}"


class RelayStrategy(ABC):
    """Fan-out policy for thread-scoped events."""

    mode: RelayMode

    def __init__(self, sio: Any) -> None:
        """
        Initialize strategy.

        Args:
            sio: socketio.AsyncServer (or compatible) used for emits and rooms
        """
        self.sio = sio

    @abstractmethod
    async def join(self, sid: str, thread_id: str) -> None:
        """Subscribe a connection to a thread's events."""
        ...

    @abstractmethod
    async def leave(self, sid: str, thread_id: str) -> None:
        """Unsubscribe a connection from a thread's events."""
        ...

    @abstractmethod
    async def relay(
        self,
        event: str,
        payload: dict[str, Any],
        *,
        thread_id: str,
        sender_sid: str,
        include_sender: bool = True,
    ) -> None:
        """
        Deliver a thread event.

        Args:
            event: Outbound event name
            payload: Event payload (always carries threadId)
            thread_id: Thread the event belongs to
            sender_sid: Originating connection
            include_sender: Deliver to the sender too when it is a recipient
        """
        ...


class RoomScopedRelay(RelayStrategy):
    """Relay only to connections that joined `thread:<id>`."""

    mode = RelayMode.ROOM

    async def join(self, sid: str, thread_id: str) -> None:
        await self.sio.enter_room(sid, room_for_thread(thread_id))

    async def leave(self, sid: str, thread_id: str) -> None:
        await self.sio.leave_room(sid, room_for_thread(thread_id))

    async def relay(
        self,
        event: str,
        payload: dict[str, Any],
        *,
        thread_id: str,
        sender_sid: str,
        include_sender: bool = True,
    ) -> None:
        room = room_for_thread(thread_id)
        logger.debug("Relaying to room", extra={"event": event, "room": room})
        await self.sio.emit(
            event,
            payload,
            room=room,
            skip_sid=None if include_sender else sender_sid,
        )


class GlobalBroadcastRelay(RelayStrategy):
    """Relay to every connected socket; rooms are not used."""

    mode = RelayMode.GLOBAL

    async def join(self, sid: str, thread_id: str) -> None:
        logger.debug(
            "Ignoring thread join in global relay mode",
            extra={"sid": sid, "thread_id": thread_id},
        )

    async def leave(self, sid: str, thread_id: str) -> None:
        logger.debug(
            "Ignoring thread leave in global relay mode",
            extra={"sid": sid, "thread_id": thread_id},
        )

    async def relay(
        self,
        event: str,
        payload: dict[str, Any],
        *,
        thread_id: str,
        sender_sid: str,
        include_sender: bool = True,
    ) -> None:
        logger.debug("Broadcasting to all", extra={"event": event, "thread_id": thread_id})
        await self.sio.emit(
            event,
            payload,
            skip_sid=None if include_sender else sender_sid,
        )


def build_relay_strategy(mode: RelayMode | str, sio: Any) -> RelayStrategy:
    """
    Create the strategy for a configured relay mode.

    Args:
        mode: RelayMode or its string value
        sio: Socket.IO server

    Returns:
        RelayStrategy: Strategy instance bound to sio

    Raises:
        ValueError: If mode is unknown
    """
    mode = RelayMode(mode)
    if mode is RelayMode.ROOM:
        return RoomScopedRelay(sio)
    return GlobalBroadcastRelay(sio)
