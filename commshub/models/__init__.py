"""Wire, realtime and HTTP schemas."""

from commshub.models.events import ClientEventType, ServerEventType
from commshub.models.realtime import CommsRealtimePayload, parse_realtime_payload

__all__ = [
    "ClientEventType",
    "CommsRealtimePayload",
    "ServerEventType",
    "parse_realtime_payload",
]
