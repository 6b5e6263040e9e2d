"""FastAPI routers package."""

from .booking import router as booking_router
from .health import router as health_router
from .review import router as review_router
from .tour import router as tour_router
from .user import router as user_router

__all__ = [
    "booking_router",
    "health_router",
    "review_router",
    "tour_router",
    "user_router",
]
