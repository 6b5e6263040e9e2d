"""Booking-related Pydantic schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from .common import RequestModel, ResponseModel
from .tour import TourSummary
from .user import Reviewer


class CreateBookingRequest(RequestModel):
    """Request schema for recording a booking."""

    tour: UUID = Field(..., description="Booked tour ID")
    user: UUID = Field(..., description="Booking user ID")
    price: float = Field(..., ge=0, description="Price paid")
    paid: bool = Field(True, description="Whether the payment went through")


class UpdateBookingRequest(RequestModel):
    """Partial update of a booking."""

    price: Optional[float] = Field(None, ge=0)
    paid: Optional[bool] = None


class Booking(ResponseModel):
    """Booking response schema with tour and user populated."""

    id: UUID
    tour: TourSummary
    user: Reviewer
    price: float
    paid: bool
    created_at: datetime
    version: int
