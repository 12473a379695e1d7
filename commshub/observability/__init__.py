"""
Observability module.

Provides logging configuration, safe structured logging helpers and
HTTP middleware for the relay process.
"""

from commshub.observability.logger import configure_logging

__all__ = ["configure_logging"]
