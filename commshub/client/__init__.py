"""Client realtime adapter for the comms relay."""

from commshub.client.adapter import ConnectionState, RealtimeAdapter, normalize_online_users
from commshub.client.url import effective_url

__all__ = ["ConnectionState", "RealtimeAdapter", "effective_url", "normalize_online_users"]
