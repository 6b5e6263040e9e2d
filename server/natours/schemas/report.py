"""Schemas for aggregation reports."""

from uuid import UUID

from pydantic import Field

from .common import ResponseModel


class DifficultyStats(ResponseModel):
    """Per-difficulty statistics over well-rated tours."""

    difficulty: str = Field(..., description="Upper-cased difficulty")
    num_tours: int
    num_ratings: int
    avg_rating: float
    avg_price: float
    min_price: float
    max_price: float


class MonthlyPlanEntry(ResponseModel):
    """Tour starts within one calendar month."""

    month: int = Field(..., ge=1, le=12)
    num_tour_starts: int
    tours: list[str]


class TourDistance(ResponseModel):
    """Distance from a reference point to a tour's start location."""

    id: UUID
    name: str
    distance: float
