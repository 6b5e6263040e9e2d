"""Tour model definition."""

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .review import Review
    from .user import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, Enum):
    """Tour difficulty enumeration."""
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"


DEFAULT_RATINGS_AVERAGE = 4.5


tour_guides = Table(
    "tour_guides",
    Base.metadata,
    Column("tour_id", Uuid, ForeignKey("tours.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Tour(Base):
    """Tour entity; the root of the domain."""

    __tablename__ = "tours"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Tour information
    name: Mapped[str] = mapped_column(String(40), nullable=False, unique=True, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_cover: Mapped[str] = mapped_column(String(255), nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    secret_tour: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    # Ratings aggregate, maintained from reviews
    ratings_average: Mapped[float] = mapped_column(
        Float, nullable=False, default=DEFAULT_RATINGS_AVERAGE, index=True
    )
    ratings_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Price information
    price: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    price_discount: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Start location (GeoJSON point stored as columns)
    start_location_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    start_location_lat: Mapped[float | None] = mapped_column(Float, nullable=True, index=True)
    start_location_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    start_location_description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Itinerary stops as a list of GeoJSON points with address, description and day
    locations: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_tour_duration_positive"),
        CheckConstraint("max_group_size > 0", name="ck_tour_max_group_size_positive"),
        CheckConstraint("price >= 0", name="ck_tour_price_non_negative"),
        CheckConstraint(
            "ratings_average >= 1 AND ratings_average <= 5",
            name="ck_tour_ratings_average_range",
        ),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    start_dates: Mapped[list["TourStartDate"]] = relationship(
        "TourStartDate",
        back_populates="tour",
        cascade="all, delete-orphan",
        order_by="TourStartDate.starts_at",
    )
    guides: Mapped[list["User"]] = relationship("User", secondary=tour_guides)
    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="tour",
        cascade="all, delete-orphan",
    )
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="tour",
        cascade="all, delete-orphan",
    )

    @property
    def duration_weeks(self) -> float:
        return self.duration / 7

    @property
    def start_location(self) -> dict[str, Any] | None:
        """Start location rendered as a GeoJSON point."""
        if self.start_location_lng is None or self.start_location_lat is None:
            return None
        return {
            "type": "Point",
            "coordinates": [self.start_location_lng, self.start_location_lat],
            "address": self.start_location_address,
            "description": self.start_location_description,
        }

    @start_location.setter
    def start_location(self, point: dict[str, Any] | None) -> None:
        if not point:
            self.start_location_lng = self.start_location_lat = None
            self.start_location_address = self.start_location_description = None
            return
        self.start_location_lng, self.start_location_lat = point["coordinates"]
        self.start_location_address = point.get("address")
        self.start_location_description = point.get("description")

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, name='{self.name}', slug='{self.slug}')>"


class TourStartDate(Base):
    """One scheduled start of a tour."""

    __tablename__ = "tour_start_dates"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tour_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    tour: Mapped["Tour"] = relationship("Tour", back_populates="start_dates")

    def __repr__(self) -> str:
        return f"<TourStartDate(tour_id={self.tour_id}, starts_at={self.starts_at})>"
