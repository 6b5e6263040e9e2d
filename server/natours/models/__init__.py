"""Models module exporting all database models."""

from .booking import Booking
from .review import Review
from .tour import DEFAULT_RATINGS_AVERAGE, Difficulty, Tour, TourStartDate, tour_guides
from .user import DEFAULT_PHOTO, User

__all__ = [
    # Core entities
    "Tour",
    "TourStartDate",
    "Difficulty",
    "DEFAULT_RATINGS_AVERAGE",
    "tour_guides",

    # People
    "User",
    "DEFAULT_PHOTO",

    # Records referencing tour and user
    "Review",
    "Booking",
]
