"""Booking router."""

from fastapi import APIRouter

from ..schemas.booking import Booking, CreateBookingRequest, UpdateBookingRequest
from ..services.booking_service import BookingService
from .handler_factory import Resource, register_crud_routes

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])

booking_resource = Resource(
    service_class=BookingService,
    entity="booking",
    collection="bookings",
    create_schema=CreateBookingRequest,
    update_schema=UpdateBookingRequest,
    read_schema=Booking,
)

register_crud_routes(router, booking_resource)
