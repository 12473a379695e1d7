"""
Socket event schemas for the comms relay.

Defines inbound (client-to-server) and outbound (server-to-client) event
names and their payloads. Payloads are camelCase on the wire and
snake_case in Python; every inbound payload is validated here before the
server acts on it.

Dependencies: pydantic
System role: Realtime wire protocol schemas
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from commshub.boundary.db.models.thread_model import ThreadStatus


class ClientEventType(str, Enum):
    """Client-to-server event names (canonical spelling)."""

    USER_ONLINE = "user-online"
    JOIN_THREAD = "join-thread"
    LEAVE_THREAD = "leave-thread"
    TYPING = "typing"
    TYPING_START = "typing_start"
    TYPING_STOP = "typing_stop"
    SEND_MESSAGE = "send-message"
    MESSAGE_SEEN = "message-seen"
    EDIT_MESSAGE = "edit-message"
    DELETE_MESSAGE = "delete-message"
    UPDATE_THREAD_STATUS = "update-thread-status"


# Alternate spellings used by older clients
CLIENT_EVENT_ALIASES: dict[ClientEventType, tuple[str, ...]] = {
    ClientEventType.JOIN_THREAD: ("join_thread",),
    ClientEventType.LEAVE_THREAD: ("leave_thread",),
    ClientEventType.SEND_MESSAGE: ("send_message",),
    ClientEventType.MESSAGE_SEEN: ("message_seen",),
    ClientEventType.EDIT_MESSAGE: ("edit_message",),
    ClientEventType.DELETE_MESSAGE: ("delete_message",),
    ClientEventType.UPDATE_THREAD_STATUS: ("update_thread_status",),
}


class ServerEventType(str, Enum):
    """Server-to-client event names."""

    ONLINE_USERS = "online-users"
    PRESENCE_UPDATE = "presence_update"
    TYPING = "typing"
    MESSAGE_CREATED = "message_created"
    RECEIVE_MESSAGE = "receive-message"
    MESSAGE_READ = "message_read"
    MESSAGE_UPDATED = "message_updated"
    MESSAGE_DELETED = "message_deleted"
    THREAD_UPDATED = "thread_updated"
    THREAD_STATUS_UPDATED = "thread_status_updated"
    ERROR = "error"


class WireModel(BaseModel):
    """Base for wire payloads: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible camelCase dict sent over the socket."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Inbound payloads
# ---------------------------------------------------------------------------


class UserOnlinePayload(WireModel):
    """Client announcement sent right after (re)connecting."""

    user_id: str = Field(min_length=1)


class ThreadRefPayload(WireModel):
    """Payload of join-thread / leave-thread (bare string also accepted)."""

    thread_id: str = Field(min_length=1)


class TypingPayload(WireModel):
    """
    Typing signal.

    Either directed at one user (recipient_id) or scoped to a thread.
    """

    is_typing: bool = True
    recipient_id: str | None = None
    thread_id: str | None = None
    user_name: str | None = None

    @model_validator(mode="after")
    def _require_target(self) -> "TypingPayload":
        if not self.recipient_id and not self.thread_id:
            raise ValueError("typing requires recipientId or threadId")
        return self


class AttachmentPayload(WireModel):
    """Uploaded file reference carried with a message."""

    filename: str
    mime_type: str
    size: int = Field(ge=0)
    storage_key: str
    url: str | None = None


class SendMessagePayload(WireModel):
    """New message in a thread."""

    thread_id: str = Field(min_length=1)
    content: str = ""
    attachments: list[AttachmentPayload] = Field(default_factory=list)
    reply_to_id: str | None = None

    @model_validator(mode="after")
    def _require_body(self) -> "SendMessagePayload":
        if not self.content.strip() and not self.attachments:
            raise ValueError("message requires content or attachments")
        return self


class MessageSeenPayload(WireModel):
    """Read receipt for one message."""

    message_id: str = Field(min_length=1)
    thread_id: str = Field(min_length=1)


class EditMessagePayload(WireModel):
    """Content edit of an existing message."""

    message_id: str = Field(min_length=1)
    thread_id: str = Field(min_length=1)
    content: str = Field(min_length=1)


class DeleteMessagePayload(WireModel):
    """Soft delete of an existing message."""

    message_id: str = Field(min_length=1)
    thread_id: str = Field(min_length=1)


class ThreadStatusPayload(WireModel):
    """Thread status change."""

    thread_id: str = Field(min_length=1)
    status: ThreadStatus


# ---------------------------------------------------------------------------
# Outbound payloads
# ---------------------------------------------------------------------------


class OnlineUsersEvent(WireModel):
    user_ids: list[str]


class PresenceUpdateEvent(WireModel):
    user_id: str
    is_online: bool


class TypingEvent(WireModel):
    user_id: str
    user_name: str | None = None
    is_typing: bool
    thread_id: str | None = None


class MessageCreatedEvent(WireModel):
    thread_id: str
    message_id: str
    content: str
    user_id: str
    user_name: str | None = None
    user_role: str | None = None
    created_at: datetime
    reply_to_id: str | None = None
    attachments: list[AttachmentPayload] = Field(default_factory=list)


class MessageReadEvent(WireModel):
    message_id: str
    thread_id: str
    user_id: str
    read_at: datetime


class MessageUpdatedEvent(WireModel):
    thread_id: str
    message_id: str
    content: str
    edited_at: datetime | None = None


class MessageDeletedEvent(WireModel):
    thread_id: str
    message_id: str


class ThreadUpdatedEvent(WireModel):
    thread_id: str
    last_message_at: datetime | None = None
    last_message_by_id: str | None = None
    message_count: int


class ThreadStatusUpdatedEvent(WireModel):
    thread_id: str
    status: ThreadStatus
    user_id: str
