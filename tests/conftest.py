"""
Shared test fixtures and configuration for entire test suite.

Provides: in-memory SQLite async database, a recording Socket.IO server
double, seeded threads
Dependencies: pytest, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any

import pytest


@dataclass(frozen=True)
class Emit:
    """One recorded emit: event, payload and the sids it reached."""

    event: str
    data: Any
    recipients: frozenset[str]


class FakeSocketServer:
    """
    In-process stand-in for socketio.AsyncServer.

    Tracks sessions and rooms like the real server (every sid is also
    addressable directly through `to=sid`) and records every emit with
    its resolved recipients.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}
        self.sessions: dict[str, dict] = {}
        self.rooms: dict[str, set[str]] = defaultdict(set)
        self.connected: set[str] = set()
        self.emitted: list[Emit] = []

    def on(self, event: str, handler: Any = None) -> None:
        self.handlers[event] = handler

    async def save_session(self, sid: str, session: dict) -> None:
        self.sessions[sid] = dict(session)

    async def get_session(self, sid: str) -> dict:
        return self.sessions[sid]

    async def enter_room(self, sid: str, room: str) -> None:
        self.rooms[room].add(sid)

    async def leave_room(self, sid: str, room: str) -> None:
        self.rooms[room].discard(sid)

    async def emit(
        self,
        event: str,
        data: Any = None,
        to: str | None = None,
        room: str | None = None,
        skip_sid: str | None = None,
    ) -> None:
        target = to or room
        if target is None:
            recipients = set(self.connected)
        elif target in self.rooms:
            recipients = set(self.rooms[target])
        else:
            recipients = {target} & self.connected
        if skip_sid:
            recipients.discard(skip_sid)
        self.emitted.append(Emit(event, data, frozenset(recipients)))

    # Test drivers

    async def connect(self, sid: str, query: str = "", auth: Any = None) -> None:
        self.connected.add(sid)
        environ = {"asgi.scope": {"query_string": query.encode()}}
        await self.handlers["connect"](sid, environ, auth)

    async def disconnect(self, sid: str) -> None:
        await self.handlers["disconnect"](sid, "client disconnect")
        self.connected.discard(sid)
        for members in self.rooms.values():
            members.discard(sid)
        self.sessions.pop(sid, None)

    async def trigger(self, event: str, sid: str, data: Any = None) -> Any:
        return await self.handlers[event](sid, data)

    def received(self, sid: str, event: str | None = None) -> list[Any]:
        """Payloads delivered to sid, optionally filtered by event."""
        return [
            e.data
            for e in self.emitted
            if sid in e.recipients and (event is None or e.event == event)
        ]

    def events(self, event: str) -> list[Emit]:
        return [e for e in self.emitted if e.event == event]

    def clear(self) -> None:
        self.emitted.clear()


@pytest.fixture
def fake_sio() -> FakeSocketServer:
    """Provide a recording Socket.IO server double."""
    return FakeSocketServer()


@pytest.fixture
async def sqlite_engine():
    """
    Create in-memory SQLite async engine with all tables.

    Yields:
        AsyncEngine: Engine bound to a single shared in-memory connection
    """
    from sqlalchemy import event
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import StaticPool

    from commshub.boundary.db.base import Base
    from commshub.boundary.db import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enforce foreign keys like PostgreSQL does
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def test_session_factory(sqlite_engine):
    """Session factory configured like the production one."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    return async_sessionmaker(
        sqlite_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_async_db(test_session_factory):
    """
    Create a session on the in-memory database.

    Yields:
        AsyncSession: Test database session with cleanup
    """
    async with test_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def sample_thread(test_async_db):
    """Persist an OPEN thread with no messages."""
    from commshub.boundary.db.CRUD.thread_crud import thread_crud

    thread = await thread_crud.create(test_async_db, subject="Invoice question")
    await test_async_db.commit()
    return thread


@pytest.fixture
async def sample_user(test_async_db):
    """Persist a CRM user with a display name and role."""
    from commshub.boundary.db.CRUD.user_crud import user_crud

    user = await user_crud.create(test_async_db, name="Alice Martin", role="MANAGER")
    await test_async_db.commit()
    return user
