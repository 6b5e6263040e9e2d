"""Booking service for business logic operations."""

from typing import Any

from sqlalchemy import Select
from sqlalchemy.orm import selectinload

from ..models.booking import Booking
from ..schemas.booking import CreateBookingRequest
from .base import CRUDService
from .tour_service import TourService
from .user_service import UserService


class BookingService(CRUDService[Booking]):
    """Service for booking records; payment sessions are created elsewhere."""

    model = Booking
    resource_type = "booking"

    def base_query(self, **scope: Any) -> Select:
        """Bookings with tour and user loaded."""
        return super().base_query(**scope).options(
            selectinload(Booking.tour),
            selectinload(Booking.user),
        )

    async def build(self, payload: CreateBookingRequest) -> Booking:
        """Build a booking after checking the tour and user exist."""
        # Secret tours can still be booked by direct link
        await TourService(self.db).get_by_id_or_raise(payload.tour, include_secret=True)
        await UserService(self.db).get_by_id_or_raise(payload.user)

        return Booking(
            tour_id=payload.tour,
            user_id=payload.user,
            price=payload.price,
            paid=payload.paid,
        )
