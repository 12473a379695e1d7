"""
Test suite for PresenceDirectory and InMemoryPresenceBackend.

Covers multi-connection presence, idempotent add/remove and snapshots.

System role: Verification of presence state
"""

import random

import pytest

from commshub.core.presence import InMemoryPresenceBackend, PresenceBackend, PresenceDirectory


@pytest.fixture
def directory() -> PresenceDirectory:
    """Provide an empty in-memory presence directory."""
    return PresenceDirectory()


class TestPresenceDirectoryAdd:
    """Test suite for PresenceDirectory.add."""

    def test_first_connection_should_bring_user_online(self, directory: PresenceDirectory) -> None:
        """Test add returns True only for the user's first connection."""
        # Act
        first = directory.add("u1", "sid-a")
        second = directory.add("u1", "sid-b")

        # Assert
        assert first is True
        assert second is False
        assert directory.is_online("u1")
        assert directory.connections("u1") == frozenset({"sid-a", "sid-b"})

    def test_duplicate_add_should_be_noop(self, directory: PresenceDirectory) -> None:
        """Test re-adding a known connection does not change state."""
        directory.add("u1", "sid-a")

        assert directory.add("u1", "sid-a") is False
        assert directory.connections("u1") == frozenset({"sid-a"})


class TestPresenceDirectoryRemove:
    """Test suite for PresenceDirectory.remove."""

    def test_last_connection_should_take_user_offline(self, directory: PresenceDirectory) -> None:
        """Test user stays online until the last connection closes."""
        # Arrange
        directory.add("u1", "sid-a")
        directory.add("u1", "sid-b")

        # Act & Assert
        assert directory.remove("u1", "sid-a") is False
        assert directory.is_online("u1")
        assert directory.remove("u1", "sid-b") is True
        assert not directory.is_online("u1")
        assert directory.snapshot() == []

    def test_unknown_connection_should_be_noop(self, directory: PresenceDirectory) -> None:
        """Test removing an unknown sid or user never raises."""
        directory.add("u1", "sid-a")

        assert directory.remove("u1", "sid-zzz") is False
        assert directory.remove("ghost", "sid-a") is False
        assert directory.is_online("u1")

    def test_duplicate_remove_should_not_report_twice(self, directory: PresenceDirectory) -> None:
        """Test a second disconnect for the same sid is ignored."""
        directory.add("u1", "sid-a")

        assert directory.remove("u1", "sid-a") is True
        assert directory.remove("u1", "sid-a") is False


class TestPresenceDirectorySnapshot:
    """Test suite for snapshot and sizing."""

    def test_snapshot_should_be_sorted(self, directory: PresenceDirectory) -> None:
        for user_id in ("carol", "alice", "bob"):
            directory.add(user_id, f"sid-{user_id}")

        assert directory.snapshot() == ["alice", "bob", "carol"]
        assert len(directory) == 3

    def test_random_sequences_should_match_open_connections(self) -> None:
        """Test online iff at least one simulated socket is open."""
        rng = random.Random(7)
        directory = PresenceDirectory()
        open_sids: set[str] = set()

        for _ in range(500):
            sid = f"sid-{rng.randint(0, 5)}"
            if rng.random() < 0.5:
                directory.add("u1", sid)
                open_sids.add(sid)
            else:
                directory.remove("u1", sid)
                open_sids.discard(sid)

            assert directory.is_online("u1") == bool(open_sids)
            assert directory.connections("u1") == frozenset(open_sids)


class TestPresenceBackend:
    """Test suite for backend injection."""

    def test_default_backend_should_be_in_memory(self) -> None:
        assert isinstance(PresenceDirectory().backend, InMemoryPresenceBackend)

    def test_injected_backend_should_be_used(self) -> None:
        """Test directory delegates to a custom backend."""

        class RecordingBackend(InMemoryPresenceBackend):
            def __init__(self) -> None:
                super().__init__()
                self.calls: list[tuple[str, str, str]] = []

            def add(self, user_id: str, sid: str) -> bool:
                self.calls.append(("add", user_id, sid))
                return super().add(user_id, sid)

        backend = RecordingBackend()
        directory = PresenceDirectory(backend)

        directory.add("u1", "sid-a")

        assert backend.calls == [("add", "u1", "sid-a")]
        assert isinstance(directory.backend, PresenceBackend)

    def test_health_check_should_name_backend(self) -> None:
        assert InMemoryPresenceBackend().health_check() == {
            "status": "healthy",
            "backend": "InMemoryPresenceBackend",
        }
