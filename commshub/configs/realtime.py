"""
Realtime server and client configuration settings.

Settings for the standalone Socket.IO relay (listening address, path, relay
topology, CORS policy) and for the client adapter that connects to it.

Dependencies: pydantic, pydantic_settings
System role: Realtime transport configuration
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from commshub.configs.base import BaseSettings


class RelayMode(str, Enum):
    """Relay topology used by a deployment."""

    ROOM = "room"
    GLOBAL = "global"


class RealtimeSettings(BaseSettings):
    """Socket.IO relay server configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COMMS_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0", description="Listening interface")
    port: int = Field(default=4000, description="Listening port")
    socketio_path: str = Field(
        default="socket.io",
        description="Socket.IO mount path (without leading slash)",
    )
    relay_mode: RelayMode = Field(
        default=RelayMode.ROOM,
        description="Relay topology: 'room' (thread rooms) or 'global' (broadcast to all)",
    )
    app_url: str | None = Field(
        default=None,
        description="Public URL of the CRM web app, always allowed by CORS",
    )
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3002"],
        description="Allowed origins when running in production",
    )
    client_manager_url: str | None = Field(
        default=None,
        description="Redis URL for cross-process room fan-out (optional)",
    )

    def resolve_cors_origins(self) -> str | list[str]:
        """
        Compute the CORS origin policy for the Socket.IO server.

        Returns:
            "*" outside production, otherwise the configured origins plus app_url
        """
        if not self.is_production:
            return "*"
        origins = list(self.cors_allowed_origins)
        if self.app_url and self.app_url not in origins:
            origins.append(self.app_url)
        return origins


class ClientSettings(BaseSettings):
    """Configuration for the client realtime adapter."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COMMS_SOCKET_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(default="http://localhost:4000", description="Relay base URL")
    path: str = Field(default="/socket.io", description="Socket.IO path on the relay")
    disconnect_delay_ms: int = Field(
        default=150,
        description="Grace period before a released connection is torn down",
    )
    connect_timeout: float = Field(default=10.0, description="Connect timeout in seconds")
