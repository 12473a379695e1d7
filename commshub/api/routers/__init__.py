"""API routers."""

from .broadcast import router as broadcast_router
from .health import router as health_router

__all__ = [
    "broadcast_router",
    "health_router",
]
