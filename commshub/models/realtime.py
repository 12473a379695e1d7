"""
Application-level realtime payloads.

The client adapter normalizes server wire events into one tagged union,
CommsRealtimePayload, discriminated on `type`. UI consumers switch on the
tag instead of knowing wire event names.

Dependencies: pydantic
System role: Client-side realtime event contract
"""

from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter

from commshub.models.events import AttachmentPayload, WireModel


class TypingStartPayload(WireModel):
    type: Literal["typing_start"] = "typing_start"
    thread_id: str | None = None
    user_id: str
    user_name: str | None = None


class TypingStopPayload(WireModel):
    type: Literal["typing_stop"] = "typing_stop"
    thread_id: str | None = None
    user_id: str
    user_name: str | None = None


class MessageCreatedPayload(WireModel):
    type: Literal["message_created"] = "message_created"
    thread_id: str
    message_id: str
    user_id: str | None = None
    user_name: str | None = None
    content: str = ""
    created_at: str | None = None
    reply_to_id: str | None = None
    attachments: list[AttachmentPayload] = Field(default_factory=list)


class MessageUpdatedPayload(WireModel):
    type: Literal["message_updated"] = "message_updated"
    thread_id: str
    message_id: str
    content: str


class MessageDeletedPayload(WireModel):
    type: Literal["message_deleted"] = "message_deleted"
    thread_id: str
    message_id: str


class MessageReadPayload(WireModel):
    type: Literal["message_read"] = "message_read"
    thread_id: str | None = None
    message_id: str
    user_id: str
    read_at: str | None = None


class ThreadUpdatedPayload(WireModel):
    type: Literal["thread_updated"] = "thread_updated"
    thread_id: str
    message_count: int | None = None
    last_message_at: str | None = None
    last_message_by_id: str | None = None


class ThreadStatusUpdatedPayload(WireModel):
    type: Literal["thread_status_updated"] = "thread_status_updated"
    thread_id: str
    status: str


class PresenceOnlinePayload(WireModel):
    type: Literal["presence_online"] = "presence_online"
    user_id: str


class PresenceOfflinePayload(WireModel):
    type: Literal["presence_offline"] = "presence_offline"
    user_id: str


class ErrorPayload(WireModel):
    type: Literal["error"] = "error"
    code: str = "COMMS_ERROR"
    message: str = ""
    event: str | None = None


CommsRealtimePayload = Annotated[
    Union[
        TypingStartPayload,
        TypingStopPayload,
        MessageCreatedPayload,
        MessageUpdatedPayload,
        MessageDeletedPayload,
        MessageReadPayload,
        ThreadUpdatedPayload,
        ThreadStatusUpdatedPayload,
        PresenceOnlinePayload,
        PresenceOfflinePayload,
        ErrorPayload,
    ],
    Field(discriminator="type"),
]

comms_payload_adapter: TypeAdapter[CommsRealtimePayload] = TypeAdapter(CommsRealtimePayload)


def parse_realtime_payload(data: dict) -> CommsRealtimePayload:
    """
    Validate a tagged dict into its CommsRealtimePayload variant.

    Args:
        data: Dict with a `type` tag and camelCase or snake_case fields

    Returns:
        CommsRealtimePayload: Concrete payload model

    Raises:
        pydantic.ValidationError: If the tag is unknown or fields are invalid
    """
    return comms_payload_adapter.validate_python(data)
