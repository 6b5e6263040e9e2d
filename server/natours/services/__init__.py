"""Service layer package."""

from .base import CRUDService
from .booking_service import BookingService
from .report_service import ReportService
from .review_service import ReviewService
from .tour_service import TourService
from .user_service import UserService

__all__ = [
    "BookingService",
    "CRUDService",
    "ReportService",
    "ReviewService",
    "TourService",
    "UserService",
]
