"""FastAPI dependencies."""

from .dependencies import get_relay_server

__all__ = ["get_relay_server"]
