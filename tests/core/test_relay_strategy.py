"""
Test suite for relay strategies.

Covers room-scoped and global fan-out, sender exclusion and strategy
selection from configuration.

System role: Verification of relay topology
"""

import pytest

from commshub.configs.realtime import RelayMode
from commshub.core.relay_strategy import (
    GlobalBroadcastRelay,
    RoomScopedRelay,
    build_relay_strategy,
    room_for_thread,
    room_for_user,
)


@pytest.fixture
def connected(fake_sio):
    """Three connected sockets: a and b will join thread t1, c never does."""
    fake_sio.connected.update({"sid-a", "sid-b", "sid-c"})
    return fake_sio


class TestRoomNames:
    def test_room_names(self) -> None:
        assert room_for_thread("t1") == "thread:t1"
        assert room_for_user("u1") == "user:u1"


class TestRoomScopedRelay:
    """Test suite for RoomScopedRelay."""

    @pytest.mark.asyncio
    async def test_relay_should_reach_only_room_members(self, connected) -> None:
        """Test non-members never receive thread events."""
        # Arrange
        relay = RoomScopedRelay(connected)
        await relay.join("sid-a", "t1")
        await relay.join("sid-b", "t1")

        # Act
        await relay.relay("message_created", {"threadId": "t1"}, thread_id="t1", sender_sid="sid-a")

        # Assert
        (emit,) = connected.events("message_created")
        assert emit.recipients == frozenset({"sid-a", "sid-b"})

    @pytest.mark.asyncio
    async def test_relay_should_skip_sender_when_requested(self, connected) -> None:
        """Test include_sender=False excludes the originating socket."""
        relay = RoomScopedRelay(connected)
        await relay.join("sid-a", "t1")
        await relay.join("sid-b", "t1")

        await relay.relay(
            "typing",
            {"threadId": "t1"},
            thread_id="t1",
            sender_sid="sid-a",
            include_sender=False,
        )

        assert connected.received("sid-a", "typing") == []
        assert connected.received("sid-b", "typing") == [{"threadId": "t1"}]

    @pytest.mark.asyncio
    async def test_leave_should_stop_delivery(self, connected) -> None:
        relay = RoomScopedRelay(connected)
        await relay.join("sid-b", "t1")
        await relay.leave("sid-b", "t1")

        await relay.relay("message_created", {"threadId": "t1"}, thread_id="t1", sender_sid="sid-a")

        assert connected.received("sid-b") == []


class TestGlobalBroadcastRelay:
    """Test suite for GlobalBroadcastRelay."""

    @pytest.mark.asyncio
    async def test_relay_should_reach_every_socket(self, connected) -> None:
        """Test global mode delivers to sockets that never joined."""
        relay = GlobalBroadcastRelay(connected)

        await relay.relay("message_created", {"threadId": "t1"}, thread_id="t1", sender_sid="sid-a")

        (emit,) = connected.events("message_created")
        assert emit.recipients == frozenset({"sid-a", "sid-b", "sid-c"})

    @pytest.mark.asyncio
    async def test_join_should_not_create_rooms(self, connected) -> None:
        relay = GlobalBroadcastRelay(connected)

        await relay.join("sid-a", "t1")
        await relay.leave("sid-a", "t1")

        assert room_for_thread("t1") not in connected.rooms


class TestBuildRelayStrategy:
    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (RelayMode.ROOM, RoomScopedRelay),
            ("room", RoomScopedRelay),
            (RelayMode.GLOBAL, GlobalBroadcastRelay),
            ("global", GlobalBroadcastRelay),
        ],
    )
    def test_build_should_select_by_mode(self, fake_sio, mode, expected) -> None:
        strategy = build_relay_strategy(mode, fake_sio)

        assert isinstance(strategy, expected)
        assert strategy.sio is fake_sio

    def test_unknown_mode_should_raise(self, fake_sio) -> None:
        with pytest.raises(ValueError):
            build_relay_strategy("mesh", fake_sio)
