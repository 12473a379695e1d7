"""
Client realtime adapter.

One relay connection per hosting application, shared by every consumer
that wants realtime updates. Wraps socketio.AsyncClient and:

- connects on demand (WebSocket only) and re-announces `user-online`
- defers teardown after release() so a quick re-acquire reuses the socket
- keeps the online user set in sync with `online-users` / `presence_update`
- normalizes wire events into CommsRealtimePayload for consumers
- exposes typing, thread membership and send helpers

Reconnection after transport loss is left to the Socket.IO client; the
adapter only reflects it through is_connected and stops it on disconnect.

Dependencies: python-socketio, pydantic
System role: Client-side realtime connection manager
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable
from urllib.parse import quote

import socketio
from pydantic import ValidationError
from socketio.exceptions import ConnectionError as SocketConnectionError

from commshub.client.url import effective_url
from commshub.configs.realtime import ClientSettings
from commshub.models.events import ClientEventType, ServerEventType
from commshub.models.realtime import CommsRealtimePayload, parse_realtime_payload

logger = logging.getLogger(__name__)

RecipientsLookup = Callable[[str], Iterable[str] | Awaitable[Iterable[str]]]
EventCallback = Callable[[CommsRealtimePayload], Any]
PresenceCallback = Callable[[frozenset[str]], Any]

# Wire event name -> CommsRealtimePayload tag
_WIRE_EVENT_TYPES: dict[str, str] = {
    ServerEventType.MESSAGE_CREATED.value: "message_created",
    ServerEventType.RECEIVE_MESSAGE.value: "message_created",
    ServerEventType.MESSAGE_UPDATED.value: "message_updated",
    ServerEventType.MESSAGE_DELETED.value: "message_deleted",
    ServerEventType.MESSAGE_READ.value: "message_read",
    ServerEventType.THREAD_UPDATED.value: "thread_updated",
    ServerEventType.THREAD_STATUS_UPDATED.value: "thread_status_updated",
    ServerEventType.ERROR.value: "error",
}


class ConnectionState(str, Enum):
    """Adapter connection lifecycle."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECT_PENDING = "disconnect_pending"


def normalize_online_users(data: Any) -> frozenset[str]:
    """
    Read an `online-users` payload in either accepted shape.

    Args:
        data: ["u1", "u2"] or {"userIds": ["u1", "u2"]}

    Returns:
        frozenset[str]: Online user ids (empty for unknown shapes)
    """
    if isinstance(data, dict):
        data = data.get("userIds") or []
    if not isinstance(data, (list, tuple, set, frozenset)):
        return frozenset()
    return frozenset(str(user_id) for user_id in data if user_id)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class RealtimeAdapter:
    """
    Shared realtime connection for one user.

    Created once by the hosting application's composition root and handed
    to every consumer; consumers call connect() when they need realtime
    and release() when they no longer do.
    """

    def __init__(
        self,
        settings: ClientSettings,
        user_id: str,
        *,
        user_name: str | None = None,
        recipients_lookup: RecipientsLookup,
        on_event: EventCallback | None = None,
        on_presence: PresenceCallback | None = None,
        page_protocol: str | None = None,
        client: Any | None = None,
    ) -> None:
        """
        Initialize adapter. Does not connect.

        Args:
            settings: Client settings (relay URL, path, disconnect delay)
            user_id: Current user id, sent as the `userId` handshake query
            user_name: Display name attached to typing events
            recipients_lookup: thread_id -> participant user ids (sync or async)
            on_event: Receives every normalized CommsRealtimePayload
            on_presence: Receives the online user set after each change
            page_protocol: Protocol of the hosting page ("https:" forces TLS)
            client: socketio.AsyncClient (or compatible); a new one if None
        """
        self.settings = settings
        self.user_id = user_id
        self.user_name = user_name
        self.recipients_lookup = recipients_lookup
        self.on_event = on_event
        self.on_presence = on_presence
        self.page_protocol = page_protocol
        self.client = client if client is not None else socketio.AsyncClient(
            reconnection=True,
            logger=False,
            engineio_logger=False,
        )

        self.state = ConnectionState.DISCONNECTED
        self.is_connected = False
        self.online_users: frozenset[str] = frozenset()
        self.last_event: CommsRealtimePayload | None = None
        self._pending_disconnect: asyncio.Task | None = None
        self._connect_task: asyncio.Task | None = None
        self._awaiting_reconnect = False

        self._register_handlers()

    @property
    def url(self) -> str:
        """Effective relay URL including the userId query."""
        base = effective_url(self.settings.url, self.page_protocol)
        return f"{base}?userId={quote(self.user_id, safe='')}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """
        Acquire the connection.

        Cancels a pending deferred disconnect. A live socket is reused and
        `user-online` is re-sent so the server resyncs presence. A handshake
        already in flight is shared rather than started twice, and while the
        Socket.IO client is reconnecting on its own no new socket is opened.

        Returns:
            bool: True if the socket is connected afterwards
        """
        self._cancel_pending_disconnect()

        if self.client.connected:
            self.state = ConnectionState.CONNECTED
            self.is_connected = True
            await self._announce()
            return True

        self.state = ConnectionState.CONNECTING

        if self._awaiting_reconnect:
            # The client re-fires `connect` once its reconnect loop succeeds
            return False

        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.create_task(self._open())
        return await asyncio.shield(self._connect_task)

    async def _open(self) -> bool:
        logger.info("Connecting to relay", extra={"url": self.url, "path": self.settings.path})
        try:
            await self.client.connect(
                self.url,
                transports=["websocket"],
                socketio_path=self.settings.path.strip("/"),
                wait_timeout=self.settings.connect_timeout,
            )
        except SocketConnectionError as e:
            logger.warning(
                "Relay connection failed",
                extra={"url": self.url, "error_msg": str(e)},
            )
            self.state = ConnectionState.DISCONNECTED
            self.is_connected = False
            return False

        if self.state is ConnectionState.DISCONNECTED:
            # Released for good while the handshake was in flight
            await self.client.shutdown()
            self.is_connected = False
            return False

        return self.client.connected

    def release(self) -> None:
        """
        Release the connection after the configured grace period.

        A connect() before the delay elapses cancels the teardown and keeps
        the same socket.
        """
        if self.state is ConnectionState.DISCONNECTED:
            return

        self._cancel_pending_disconnect()
        self.state = ConnectionState.DISCONNECT_PENDING
        delay = self.settings.disconnect_delay_ms / 1000
        self._pending_disconnect = asyncio.create_task(self._disconnect_after(delay))

    async def disconnect(self) -> None:
        """
        Tear down the connection immediately.

        Also stops the Socket.IO client's reconnect attempts after a lost
        transport.
        """
        self._cancel_pending_disconnect()
        was_connected = self.client.connected
        self.state = ConnectionState.DISCONNECTED
        self.is_connected = False
        self._awaiting_reconnect = False
        await self.client.shutdown()
        if was_connected:
            logger.info("Disconnected from relay", extra={"user_id": self.user_id})

    async def dispose(self) -> None:
        """Disconnect and drop every consumer callback."""
        await self.disconnect()
        self.on_event = None
        self.on_presence = None
        self.online_users = frozenset()

    async def _disconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._pending_disconnect = None
        await self.disconnect()

    def _cancel_pending_disconnect(self) -> None:
        if self._pending_disconnect is not None:
            self._pending_disconnect.cancel()
            self._pending_disconnect = None

    # ------------------------------------------------------------------
    # Outbound helpers
    # ------------------------------------------------------------------

    async def start_typing(self, thread_id: str) -> int:
        """Tell the thread's other participants this user is typing."""
        return await self._emit_typing(thread_id, True)

    async def stop_typing(self, thread_id: str) -> int:
        """Tell the thread's other participants this user stopped typing."""
        return await self._emit_typing(thread_id, False)

    async def _emit_typing(self, thread_id: str, is_typing: bool) -> int:
        if not self.client.connected:
            return 0

        recipients = await _maybe_await(self.recipients_lookup(thread_id))
        sent = 0
        for recipient_id in dict.fromkeys(recipients or ()):
            if not recipient_id or recipient_id == self.user_id:
                continue
            await self.client.emit(
                ClientEventType.TYPING.value,
                {
                    "recipientId": recipient_id,
                    "isTyping": is_typing,
                    "threadId": thread_id,
                    "userName": self.user_name,
                },
            )
            sent += 1
        return sent

    async def join_thread(self, thread_id: str) -> None:
        if self.client.connected:
            await self.client.emit(ClientEventType.JOIN_THREAD.value, {"threadId": thread_id})

    async def leave_thread(self, thread_id: str) -> None:
        if self.client.connected:
            await self.client.emit(ClientEventType.LEAVE_THREAD.value, {"threadId": thread_id})

    async def mark_seen(self, thread_id: str, message_id: str) -> None:
        if self.client.connected:
            await self.client.emit(
                ClientEventType.MESSAGE_SEEN.value,
                {"threadId": thread_id, "messageId": message_id},
            )

    async def send_message(
        self,
        thread_id: str,
        content: str,
        *,
        reply_to_id: str | None = None,
        attachments: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any] | None:
        """
        Send a message and wait for the relay's acknowledgement.

        Args:
            thread_id: Target thread
            content: Message body
            reply_to_id: Parent message id for replies
            attachments: Attachment descriptors (camelCase keys)

        Returns:
            Ack dict ({"ok": True, "messageId": ...} or {"ok": False, "error": code}),
            None when not connected

        Raises:
            socketio.exceptions.TimeoutError: If no ack arrives within connect_timeout
        """
        if not self.client.connected:
            return None

        payload: dict[str, Any] = {"threadId": thread_id, "content": content}
        if reply_to_id:
            payload["replyToId"] = reply_to_id
        if attachments:
            payload["attachments"] = attachments

        return await self.client.call(
            ClientEventType.SEND_MESSAGE.value,
            payload,
            timeout=self.settings.connect_timeout,
        )

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def _register_handlers(self) -> None:
        self.client.on("connect", self._on_connect)
        self.client.on("disconnect", self._on_disconnect)
        self.client.on("connect_error", self._on_connect_error)
        self.client.on(ServerEventType.ONLINE_USERS.value, self._on_online_users)
        self.client.on(ServerEventType.PRESENCE_UPDATE.value, self._on_presence_update)
        self.client.on(ServerEventType.TYPING.value, self._on_typing)
        for wire_event, tag in _WIRE_EVENT_TYPES.items():
            self.client.on(wire_event, self._tagged_handler(tag))

    async def _announce(self) -> None:
        await self.client.emit(ClientEventType.USER_ONLINE.value, {"userId": self.user_id})

    async def _on_connect(self) -> None:
        self._awaiting_reconnect = False
        if self.state is ConnectionState.DISCONNECTED:
            return
        self.is_connected = True
        if self.state is ConnectionState.CONNECTING:
            self.state = ConnectionState.CONNECTED
        logger.info("Connected to relay", extra={"user_id": self.user_id})
        await self._announce()

    def _mark_offline(self) -> None:
        self.is_connected = False
        if self.state is ConnectionState.DISCONNECTED:
            return
        if self._connect_task is None or self._connect_task.done():
            # Transport lost; the Socket.IO client reconnects on its own
            self._awaiting_reconnect = True
        if self.state is ConnectionState.CONNECTED:
            self.state = ConnectionState.CONNECTING

    async def _on_disconnect(self, *args: Any) -> None:
        self._mark_offline()
        logger.info("Relay connection closed", extra={"user_id": self.user_id})

    async def _on_connect_error(self, *args: Any) -> None:
        self._mark_offline()
        logger.warning(
            "Relay connect_error",
            extra={"user_id": self.user_id, "error_msg": str(args[0]) if args else None},
        )

    async def _on_online_users(self, data: Any) -> None:
        self.online_users = normalize_online_users(data)
        await self._notify_presence()

    async def _on_presence_update(self, data: Any) -> None:
        if not isinstance(data, dict) or not data.get("userId"):
            logger.warning("Dropping malformed presence_update")
            return

        user_id = str(data["userId"])
        is_online = bool(data.get("isOnline"))
        if is_online:
            self.online_users = self.online_users | {user_id}
        else:
            self.online_users = self.online_users - {user_id}

        await self._notify_presence()
        await self._dispatch(
            "presence_online" if is_online else "presence_offline",
            {"userId": user_id},
        )

    async def _on_typing(self, data: Any) -> None:
        if not isinstance(data, dict):
            logger.warning("Dropping malformed typing event")
            return
        tag = "typing_start" if data.get("isTyping", True) else "typing_stop"
        await self._dispatch(tag, data)

    def _tagged_handler(self, tag: str) -> Callable[[Any], Awaitable[None]]:
        async def handle(data: Any = None) -> None:
            await self._dispatch(tag, data)

        return handle

    async def _dispatch(self, tag: str, data: Any) -> None:
        if not isinstance(data, dict):
            logger.warning("Dropping non-object realtime payload", extra={"payload_type": tag})
            return

        try:
            payload = parse_realtime_payload({**data, "type": tag})
        except ValidationError as e:
            logger.warning(
                "Dropping malformed realtime payload",
                extra={"payload_type": tag, "error_count": e.error_count()},
            )
            return

        self.last_event = payload
        if self.on_event is not None:
            await _maybe_await(self.on_event(payload))

    async def _notify_presence(self) -> None:
        if self.on_presence is not None:
            await _maybe_await(self.on_presence(self.online_users))
