"""Review service, including the tour rating aggregate."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import selectinload

from ..core.exceptions import ValidationError
from ..core.observability import metrics_collector
from ..models.review import Review
from ..models.tour import DEFAULT_RATINGS_AVERAGE, Tour
from ..schemas.review import CreateReviewRequest
from .base import CRUDService
from .tour_service import TourService
from .user_service import UserService

logger = logging.getLogger(__name__)


class ReviewService(CRUDService[Review]):
    """
    Service for review-related operations.

    Every committed insert, update and delete is followed by a
    recalculation of the owning tour's ``ratings_average`` and
    ``ratings_quantity``. The recalculation is a separate write: if it
    fails, the review change stays committed and the aggregate is
    corrected by the next review write for that tour.
    """

    model = Review
    resource_type = "review"

    def base_query(self, **scope: Any) -> Select:
        """Reviews with the reviewing user loaded."""
        return super().base_query(**scope).options(selectinload(Review.user))

    async def build(self, payload: CreateReviewRequest) -> Review:
        """Build a review after checking the tour and user exist."""
        if payload.tour is None:
            raise ValidationError("Invalid input data. A review must belong to a tour")
        if payload.user is None:
            raise ValidationError("Invalid input data. A review must belong to a user")

        await TourService(self.db).get_by_id_or_raise(payload.tour)
        await UserService(self.db).get_by_id_or_raise(payload.user)

        return Review(
            review=payload.review,
            rating=payload.rating,
            tour_id=payload.tour,
            user_id=payload.user,
        )

    async def after_write(self, review: Review) -> None:
        metrics_collector.record_review_written("write")
        await self.calc_average_ratings(review.tour_id)

    async def after_delete(self, review: Review) -> None:
        metrics_collector.record_review_written("delete")
        await self.calc_average_ratings(review.tour_id)

    async def calc_average_ratings(self, tour_id: UUID) -> tuple[int, float]:
        """
        Recompute and store a tour's rating count and mean.

        Args:
            tour_id: Tour whose reviews are aggregated

        Returns:
            (ratings_quantity, ratings_average) as stored; (0, 4.5) when the
            tour has no reviews
        """
        stmt = select(func.count(Review.id), func.avg(Review.rating)).where(Review.tour_id == tour_id)
        count, average = (await self.db.execute(stmt)).one()

        if count:
            quantity, average = count, round(float(average), 2)
        else:
            quantity, average = 0, DEFAULT_RATINGS_AVERAGE

        await self.db.execute(
            update(Tour)
            .where(Tour.id == tour_id)
            .values(ratings_quantity=quantity, ratings_average=average)
        )
        await self.db.commit()

        logger.info(
            "Tour ratings recalculated",
            extra={
                "tour_id": str(tour_id),
                "ratings_quantity": quantity,
                "ratings_average": average,
            }
        )
        metrics_collector.record_rating_recalculation()

        return quantity, average
