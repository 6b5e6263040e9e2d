"""Tour-related Pydantic schemas."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from ..models.tour import DEFAULT_RATINGS_AVERAGE, Difficulty
from .common import GeoPoint, Location, RequestModel, ResponseModel, TrimmedStr
from .review import Review
from .user import Guide

TOUR_NAME_MIN_LENGTH = 10
TOUR_NAME_MAX_LENGTH = 40


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CreateTourRequest(RequestModel):
    """Request schema for creating a tour."""

    name: TrimmedStr = Field(
        ...,
        min_length=TOUR_NAME_MIN_LENGTH,
        max_length=TOUR_NAME_MAX_LENGTH,
        description="Unique tour name"
    )
    duration: int = Field(..., gt=0, description="Duration in days")
    max_group_size: int = Field(..., gt=0, description="Maximum group size")
    difficulty: Difficulty = Field(..., description="easy, medium or difficult")
    ratings_average: float = Field(DEFAULT_RATINGS_AVERAGE, ge=1, le=5)
    ratings_quantity: int = Field(0, ge=0)
    price: float = Field(..., ge=0, description="Regular price")
    price_discount: Optional[float] = Field(None, ge=0, description="Discounted price, below price")
    summary: TrimmedStr = Field(..., min_length=1, description="Short summary")
    description: Optional[TrimmedStr] = Field(None, description="Long description")
    image_cover: str = Field(..., min_length=1, description="Cover image filename")
    images: list[str] = Field(default_factory=list, description="Gallery image filenames")
    start_dates: list[datetime] = Field(default_factory=list, description="Scheduled start dates")
    secret_tour: bool = Field(False, description="Hidden from regular queries")
    start_location: Optional[GeoPoint] = Field(None, description="Meeting point")
    locations: list[Location] = Field(default_factory=list, description="Itinerary stops")
    guides: list[UUID] = Field(default_factory=list, description="Guide user IDs")

    @field_validator("start_dates")
    @classmethod
    def normalize_start_dates(cls, v: list[datetime]) -> list[datetime]:
        return [_as_utc(item) for item in v]

    @model_validator(mode="after")
    def discount_below_price(self) -> "CreateTourRequest":
        if self.price_discount is not None and self.price_discount >= self.price:
            raise ValueError(
                f"Discount price ({self.price_discount}) should be below regular price"
            )
        return self


class UpdateTourRequest(RequestModel):
    """Partial update of a tour; cross-field rules are re-checked by the service."""

    name: Optional[TrimmedStr] = Field(
        None, min_length=TOUR_NAME_MIN_LENGTH, max_length=TOUR_NAME_MAX_LENGTH
    )
    duration: Optional[int] = Field(None, gt=0)
    max_group_size: Optional[int] = Field(None, gt=0)
    difficulty: Optional[Difficulty] = None
    ratings_average: Optional[float] = Field(None, ge=1, le=5)
    ratings_quantity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    price_discount: Optional[float] = Field(None, ge=0)
    summary: Optional[TrimmedStr] = Field(None, min_length=1)
    description: Optional[TrimmedStr] = None
    image_cover: Optional[str] = Field(None, min_length=1)
    images: Optional[list[str]] = None
    start_dates: Optional[list[datetime]] = None
    secret_tour: Optional[bool] = None
    start_location: Optional[GeoPoint] = None
    locations: Optional[list[Location]] = None
    guides: Optional[list[UUID]] = None

    @field_validator("start_dates")
    @classmethod
    def normalize_start_dates(cls, v: Optional[list[datetime]]) -> Optional[list[datetime]]:
        return [_as_utc(item) for item in v] if v is not None else v


class Tour(ResponseModel):
    """Tour response schema."""

    id: UUID
    name: str
    slug: str
    duration: int
    duration_weeks: float
    max_group_size: int
    difficulty: str
    ratings_average: float
    ratings_quantity: int
    price: float
    price_discount: Optional[float] = None
    summary: str
    description: Optional[str] = None
    image_cover: str
    images: list[str]
    created_at: datetime
    start_dates: list[datetime]
    secret_tour: bool
    start_location: Optional[GeoPoint] = None
    locations: list[Location]
    guides: list[Guide]
    version: int

    @field_validator("start_dates", mode="before")
    @classmethod
    def unwrap_start_dates(cls, v: Any) -> Any:
        return [getattr(item, "starts_at", item) for item in v or []]


class TourDetail(Tour):
    """Single tour with its reviews populated."""

    reviews: list[Review]


class TourSummary(ResponseModel):
    """Tour embedded in a booking."""

    id: UUID
    name: str
    slug: str
