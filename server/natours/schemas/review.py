"""Review-related Pydantic schemas."""

from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import BeforeValidator, Field

from .common import RequestModel, ResponseModel, TrimmedStr
from .user import Reviewer


def _round_rating(v: Any) -> Any:
    """Round ratings to one decimal before range validation (4.666 -> 4.7)."""
    if v is None or isinstance(v, bool):
        return v
    try:
        return round(float(v), 1)
    except (TypeError, ValueError):
        return v


Rating = Annotated[float, BeforeValidator(_round_rating), Field(ge=1, le=5)]


class CreateReviewRequest(RequestModel):
    """Request schema for creating a review.

    ``tour`` and ``user`` may be omitted when the route supplies them (nested
    tour route, authenticated user).
    """

    review: TrimmedStr = Field(..., min_length=1, description="Review text")
    rating: Rating = Field(..., description="Rating between 1.0 and 5.0")
    tour: Optional[UUID] = Field(None, description="Reviewed tour ID")
    user: Optional[UUID] = Field(None, description="Reviewing user ID")


class UpdateReviewRequest(RequestModel):
    """Partial update of a review."""

    review: Optional[TrimmedStr] = Field(None, min_length=1)
    rating: Optional[Rating] = None


class Review(ResponseModel):
    """Review response schema with the reviewer populated."""

    id: UUID
    review: str
    rating: float
    created_at: datetime
    tour_id: UUID = Field(..., serialization_alias="tour")
    user: Reviewer
    version: int
