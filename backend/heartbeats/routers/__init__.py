"""API routers."""
from .heartbeat import router as heartbeat_router
from .analytics import router as analytics_router

__all__ = ["heartbeat_router", "analytics_router"]
