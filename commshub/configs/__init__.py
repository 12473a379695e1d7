"""
Configuration management module.

Provides centralized, type-safe configuration using Pydantic Settings.
All config modules support environment variable mapping with validation.
"""

from commshub.configs.realtime import ClientSettings, RealtimeSettings, RelayMode
from commshub.configs.settings import Settings, get_settings

__all__ = ["ClientSettings", "RealtimeSettings", "RelayMode", "Settings", "get_settings"]
