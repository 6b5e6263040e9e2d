"""User service for business logic operations."""

import logging
from uuid import UUID

from sqlalchemy import select

from ..core.security import hash_password
from ..models.review import Review
from ..models.user import DEFAULT_PHOTO, User
from ..schemas.user import CreateUserRequest
from .base import CRUDService

logger = logging.getLogger(__name__)


class UserService(CRUDService[User]):
    """Service for user-related operations."""

    model = User
    resource_type = "user"
    hidden_fields = ("password",)

    async def build(self, payload: CreateUserRequest) -> User:
        """Build a user with a hashed password; the confirmation is discarded."""
        return User(
            name=payload.name,
            email=payload.email,
            photo=payload.photo or DEFAULT_PHOTO,
            password=hash_password(payload.password),
        )

    async def delete_by_id(self, entity_id: UUID) -> bool:
        """
        Delete a user together with their reviews and bookings.

        The rating aggregate of every tour the user reviewed is recomputed
        afterwards.
        """
        result = await self.db.execute(
            select(Review.tour_id).where(Review.user_id == entity_id).distinct()
        )
        reviewed_tour_ids = list(result.scalars())

        deleted = await super().delete_by_id(entity_id)
        if not deleted:
            return False

        # Imported here to avoid a cycle: reviews look users up on insert
        from .review_service import ReviewService

        review_service = ReviewService(self.db)
        for tour_id in reviewed_tour_ids:
            await review_service.calc_average_ratings(tour_id)

        logger.info(
            "Recomputed ratings after user deletion",
            extra={"user_id": str(entity_id), "tour_count": len(reviewed_tour_ids)}
        )
        return True
