"""API routers."""

from botfleet.api.bots import router as bots_router
from botfleet.api.profiles import router as profiles_router

__all__ = [
    "bots_router",
    "profiles_router",
]
