"""
Socket.IO presence and relay server.

Accepts socket connections, keeps the presence directory current and
relays typing, message, read receipt and thread events. Write events go
through the message persistence bridge first; nothing is relayed unless
the write committed.

Handshake convention:
- Socket.IO path: /socket.io (COMMS_SOCKETIO_PATH)
- Identity: `query.userId` (optional `query.userName`), `auth` dict as fallback
- Connections without a user id are accepted but never appear online

Every connection with a user id joins `user:<id>` for directed events
(recipient typing). Thread rooms are managed by the relay strategy.

Dependencies: python-socketio, pydantic, sqlalchemy
System role: Realtime presence and relay process
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable
from urllib.parse import parse_qs

import socketio
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from commshub.application.services.message_service import MessageService
from commshub.boundary.db.connection import get_async_session_factory
from commshub.configs.realtime import RealtimeSettings
from commshub.core.exceptions import CommsException, UnauthenticatedError, ValidationError
from commshub.core.presence import PresenceDirectory
from commshub.core.relay_strategy import RelayStrategy, build_relay_strategy, room_for_user
from commshub.models.events import (
    CLIENT_EVENT_ALIASES,
    ClientEventType,
    DeleteMessagePayload,
    EditMessagePayload,
    MessageCreatedEvent,
    MessageDeletedEvent,
    MessageReadEvent,
    MessageSeenPayload,
    MessageUpdatedEvent,
    OnlineUsersEvent,
    PresenceUpdateEvent,
    SendMessagePayload,
    ServerEventType,
    ThreadRefPayload,
    ThreadStatusPayload,
    ThreadStatusUpdatedEvent,
    ThreadUpdatedEvent,
    TypingEvent,
    TypingPayload,
    UserOnlinePayload,
)
from commshub.observability.log_utils import (
    log_exception_with_context,
    log_with_context,
    safe_log_value,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Any], Awaitable[Any]]


def create_socket_server(settings: RealtimeSettings) -> socketio.AsyncServer:
    """
    Build the Socket.IO server for the configured deployment.

    Uses a Redis client manager for cross-process room fan-out when
    COMMS_CLIENT_MANAGER_URL is set.

    Args:
        settings: Realtime settings

    Returns:
        socketio.AsyncServer: ASGI-mode server
    """
    client_manager = None
    if settings.client_manager_url:
        client_manager = socketio.AsyncRedisManager(settings.client_manager_url)

    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.resolve_cors_origins(),
        client_manager=client_manager,
        logger=False,
        engineio_logger=False,
    )


def extract_identity(environ: dict[str, Any], auth: Any | None) -> tuple[str | None, str | None]:
    """
    Extract (userId, userName) from the Socket.IO handshake.

    Reads the query string from ASGI or WSGI environ shapes; falls back to
    the `auth` dict for values missing from the query.
    """
    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    query = parse_qs(str(query_string))
    user_id = query.get("userId", [None])[0] or None
    user_name = query.get("userName", [None])[0] or None

    if isinstance(auth, dict):
        if not user_id and isinstance(auth.get("userId"), str):
            user_id = auth["userId"] or None
        if not user_name and isinstance(auth.get("userName"), str):
            user_name = auth["userName"] or None

    return user_id, user_name


def _validation_details(exc: PydanticValidationError) -> dict[str, Any]:
    return {
        "errors": [
            {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
            for err in exc.errors()
        ]
    }


class RelayServer:
    """
    Presence and relay server.

    Owns the Socket.IO server handlers; presence, relay strategy and the
    database session factory are injected.
    """

    def __init__(
        self,
        settings: RealtimeSettings,
        presence: PresenceDirectory | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        sio: Any | None = None,
        strategy: RelayStrategy | None = None,
        service_factory: Callable[[AsyncSession], MessageService] = MessageService,
    ) -> None:
        """
        Initialize relay server and register socket handlers.

        Args:
            settings: Realtime settings (relay mode, CORS, client manager)
            presence: Presence directory (new in-memory directory if None)
            session_factory: Async session factory (configured database if None)
            sio: Socket.IO server (built from settings if None)
            strategy: Relay strategy (built from settings.relay_mode if None)
            service_factory: Builds the persistence bridge for one session
        """
        self.settings = settings
        self.presence = presence or PresenceDirectory()
        self.sio = sio if sio is not None else create_socket_server(settings)
        self.strategy = strategy or build_relay_strategy(settings.relay_mode, self.sio)
        self.service_factory = service_factory
        self._session_factory = session_factory

        self._register_handlers()
        logger.info(
            "Relay server initialized",
            extra={"relay_mode": self.strategy.mode.value},
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _register_handlers(self) -> None:
        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)

        handlers: dict[ClientEventType, EventHandler] = {
            ClientEventType.USER_ONLINE: self._on_user_online,
            ClientEventType.JOIN_THREAD: self._on_join_thread,
            ClientEventType.LEAVE_THREAD: self._on_leave_thread,
            ClientEventType.TYPING: self._on_typing,
            ClientEventType.TYPING_START: self._on_typing_start,
            ClientEventType.TYPING_STOP: self._on_typing_stop,
            ClientEventType.SEND_MESSAGE: self._on_send_message,
            ClientEventType.MESSAGE_SEEN: self._on_message_seen,
            ClientEventType.EDIT_MESSAGE: self._on_edit_message,
            ClientEventType.DELETE_MESSAGE: self._on_delete_message,
            ClientEventType.UPDATE_THREAD_STATUS: self._on_update_thread_status,
        }
        for event_type, handler in handlers.items():
            for name in (event_type.value, *CLIENT_EVENT_ALIASES.get(event_type, ())):
                self.sio.on(name, self._guarded(name, handler))

    def _guarded(self, event: str, handler: EventHandler) -> EventHandler:
        """
        Wrap an event handler so failures become `error` events.

        The returned value doubles as the Socket.IO acknowledgement.
        """

        async def handle(sid: str, data: Any = None) -> Any:
            try:
                return await handler(sid, data)
            except PydanticValidationError as e:
                error: CommsException = ValidationError(
                    "Invalid payload",
                    details=_validation_details(e),
                )
            except CommsException as e:
                error = e
            except Exception as e:
                log_exception_with_context(
                    logger,
                    "Unhandled error in socket handler",
                    e,
                    event=event,
                    sid=sid,
                )
                error = CommsException("Unexpected server error")

            log_with_context(
                logger,
                logging.WARNING,
                "Socket event rejected",
                event=event,
                sid=sid,
                error_code=error.error_code,
                error_details=error.details,
            )
            await self.sio.emit(ServerEventType.ERROR.value, error.to_payload(event), to=sid)
            return {"ok": False, "error": error.error_code}

        return handle

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def _on_connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None) -> None:
        user_id, user_name = extract_identity(environ, auth)
        await self.sio.save_session(sid, {"user_id": user_id, "user_name": user_name})

        if not user_id:
            logger.info("Anonymous socket connected", extra={"sid": sid})
            return

        logger.info("Socket connected", extra={"sid": sid, "user_id": user_id})
        await self._bind_user(sid, user_id)

    async def _on_disconnect(self, sid: str, reason: Any = None) -> None:
        session = await self._session(sid)
        user_id = session.get("user_id")
        logger.info(
            "Socket disconnected",
            extra={"sid": sid, "user_id": user_id, "reason": safe_log_value(reason)},
        )
        if not user_id:
            return

        if self.presence.remove(user_id, sid):
            await self._broadcast_presence(user_id, is_online=False)

    async def _on_user_online(self, sid: str, data: Any) -> None:
        payload = UserOnlinePayload.model_validate(data)
        session = await self._session(sid)
        user_id = session.get("user_id")

        if not user_id:
            user_id = payload.user_id
            session["user_id"] = user_id
            await self.sio.save_session(sid, session)
        elif user_id != payload.user_id:
            logger.warning(
                "user-online does not match handshake identity",
                extra={"sid": sid, "user_id": user_id, "announced_id": payload.user_id},
            )

        await self._bind_user(sid, user_id)

    async def _bind_user(self, sid: str, user_id: str) -> None:
        await self.sio.enter_room(sid, room_for_user(user_id))
        if self.presence.add(user_id, sid):
            await self._broadcast_presence(user_id, is_online=True)
        else:
            await self.sio.emit(
                ServerEventType.ONLINE_USERS.value,
                self._online_users(),
                to=sid,
            )

    async def _broadcast_presence(self, user_id: str, is_online: bool) -> None:
        logger.info(
            "Presence changed",
            extra={"user_id": user_id, "is_online": is_online, "online_count": len(self.presence)},
        )
        await self.sio.emit(ServerEventType.ONLINE_USERS.value, self._online_users())
        await self.sio.emit(
            ServerEventType.PRESENCE_UPDATE.value,
            PresenceUpdateEvent(user_id=user_id, is_online=is_online).to_wire(),
        )

    def _online_users(self) -> dict[str, Any]:
        return OnlineUsersEvent(user_ids=self.presence.snapshot()).to_wire()

    # ------------------------------------------------------------------
    # Rooms and typing
    # ------------------------------------------------------------------

    async def _on_join_thread(self, sid: str, data: Any) -> None:
        thread_id = self._thread_ref(data)
        await self.strategy.join(sid, thread_id)
        logger.debug("Joined thread", extra={"sid": sid, "thread_id": thread_id})

    async def _on_leave_thread(self, sid: str, data: Any) -> None:
        thread_id = self._thread_ref(data)
        await self.strategy.leave(sid, thread_id)
        logger.debug("Left thread", extra={"sid": sid, "thread_id": thread_id})

    async def _on_typing(self, sid: str, data: Any) -> None:
        await self._relay_typing(sid, TypingPayload.model_validate(data))

    async def _on_typing_start(self, sid: str, data: Any) -> None:
        payload = TypingPayload.model_validate(data)
        await self._relay_typing(sid, payload.model_copy(update={"is_typing": True}))

    async def _on_typing_stop(self, sid: str, data: Any) -> None:
        payload = TypingPayload.model_validate(data)
        await self._relay_typing(sid, payload.model_copy(update={"is_typing": False}))

    async def _relay_typing(self, sid: str, payload: TypingPayload) -> None:
        user_id, session_name = await self._require_user(sid)
        event = TypingEvent(
            user_id=user_id,
            user_name=payload.user_name or session_name,
            is_typing=payload.is_typing,
            thread_id=payload.thread_id,
        ).to_wire()

        if payload.recipient_id:
            await self.sio.emit(
                ServerEventType.TYPING.value,
                event,
                room=room_for_user(payload.recipient_id),
            )
            return

        await self.strategy.relay(
            ServerEventType.TYPING.value,
            event,
            thread_id=payload.thread_id,
            sender_sid=sid,
            include_sender=False,
        )

    # ------------------------------------------------------------------
    # Persisted events
    # ------------------------------------------------------------------

    async def _on_send_message(self, sid: str, data: Any) -> dict[str, Any]:
        user_id, user_name = await self._require_user(sid)
        payload = SendMessagePayload.model_validate(data)

        async with self._db_session() as db:
            persisted = await self.service_factory(db).persist_message(
                thread_id=payload.thread_id,
                author_id=user_id,
                content=payload.content,
                reply_to_id=payload.reply_to_id,
                attachments=[a.model_dump() for a in payload.attachments],
                author_name=user_name,
            )

        created = MessageCreatedEvent(
            thread_id=persisted.thread_id,
            message_id=persisted.id,
            content=persisted.content,
            user_id=persisted.author_id,
            user_name=persisted.author_name,
            user_role=persisted.author_role,
            created_at=persisted.created_at,
            reply_to_id=persisted.reply_to_id,
            attachments=persisted.attachments,
        ).to_wire()
        await self.strategy.relay(
            ServerEventType.MESSAGE_CREATED.value,
            created,
            thread_id=persisted.thread_id,
            sender_sid=sid,
        )

        activity = persisted.thread
        if activity is not None:
            await self.strategy.relay(
                ServerEventType.THREAD_UPDATED.value,
                ThreadUpdatedEvent(
                    thread_id=activity.thread_id,
                    last_message_at=activity.last_message_at,
                    last_message_by_id=activity.last_message_by_id,
                    message_count=activity.message_count,
                ).to_wire(),
                thread_id=activity.thread_id,
                sender_sid=sid,
            )

        return {"ok": True, "messageId": persisted.id}

    async def _on_message_seen(self, sid: str, data: Any) -> dict[str, Any]:
        user_id, _ = await self._require_user(sid)
        payload = MessageSeenPayload.model_validate(data)

        async with self._db_session() as db:
            receipt = await self.service_factory(db).mark_seen(payload.message_id, user_id)

        await self.strategy.relay(
            ServerEventType.MESSAGE_READ.value,
            MessageReadEvent(
                message_id=receipt.message_id,
                thread_id=receipt.thread_id,
                user_id=receipt.user_id,
                read_at=receipt.read_at,
            ).to_wire(),
            thread_id=receipt.thread_id,
            sender_sid=sid,
        )
        return {"ok": True}

    async def _on_edit_message(self, sid: str, data: Any) -> dict[str, Any]:
        user_id, _ = await self._require_user(sid)
        payload = EditMessagePayload.model_validate(data)

        async with self._db_session() as db:
            edited = await self.service_factory(db).edit_message(
                payload.message_id,
                user_id,
                payload.content,
            )

        await self.strategy.relay(
            ServerEventType.MESSAGE_UPDATED.value,
            MessageUpdatedEvent(
                thread_id=edited.thread_id,
                message_id=edited.id,
                content=edited.content,
                edited_at=edited.edited_at,
            ).to_wire(),
            thread_id=edited.thread_id,
            sender_sid=sid,
        )
        return {"ok": True}

    async def _on_delete_message(self, sid: str, data: Any) -> dict[str, Any]:
        user_id, _ = await self._require_user(sid)
        payload = DeleteMessagePayload.model_validate(data)

        async with self._db_session() as db:
            deleted = await self.service_factory(db).delete_message(payload.message_id, user_id)

        await self.strategy.relay(
            ServerEventType.MESSAGE_DELETED.value,
            MessageDeletedEvent(thread_id=deleted.thread_id, message_id=deleted.id).to_wire(),
            thread_id=deleted.thread_id,
            sender_sid=sid,
        )
        return {"ok": True}

    async def _on_update_thread_status(self, sid: str, data: Any) -> dict[str, Any]:
        user_id, _ = await self._require_user(sid)
        payload = ThreadStatusPayload.model_validate(data)

        async with self._db_session() as db:
            change = await self.service_factory(db).update_thread_status(
                payload.thread_id,
                payload.status,
                user_id,
            )

        await self.strategy.relay(
            ServerEventType.THREAD_STATUS_UPDATED.value,
            ThreadStatusUpdatedEvent(
                thread_id=change.thread_id,
                status=change.status,
                user_id=change.user_id,
            ).to_wire(),
            thread_id=change.thread_id,
            sender_sid=sid,
        )
        return {"ok": True}

    # ------------------------------------------------------------------
    # HTTP side-channel
    # ------------------------------------------------------------------

    async def broadcast(self, event: str, payload: Any) -> None:
        """
        Emit an event to every connected socket.

        Used by other backend processes through POST /broadcast.

        Args:
            event: Event name
            payload: Payload forwarded verbatim
        """
        logger.info("HTTP broadcast", extra={"event": event})
        await self.sio.emit(event, payload)

    @property
    def online_count(self) -> int:
        return len(self.presence)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _session(self, sid: str) -> dict[str, Any]:
        try:
            session = await self.sio.get_session(sid)
        except KeyError:
            return {}
        return session if isinstance(session, dict) else {}

    async def _require_user(self, sid: str) -> tuple[str, str | None]:
        session = await self._session(sid)
        user_id = session.get("user_id")
        if not user_id:
            raise UnauthenticatedError("Connection has no user id; reconnect with ?userId=")
        return user_id, session.get("user_name")

    @staticmethod
    def _thread_ref(data: Any) -> str:
        if isinstance(data, str):
            data = {"threadId": data}
        return ThreadRefPayload.model_validate(data).thread_id

    @asynccontextmanager
    async def _db_session(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_async_session_factory()
        async with self._session_factory() as db:
            yield db
