"""Tour service for business logic operations."""

import logging
from typing import Any
from uuid import UUID

from slugify import slugify
from sqlalchemy import Select, select
from sqlalchemy.orm import selectinload

from ..core.exceptions import NotFoundError, ValidationError
from ..models.review import Review
from ..models.tour import Tour, TourStartDate
from ..models.user import User
from ..schemas.tour import CreateTourRequest
from .base import CRUDService, column_values

logger = logging.getLogger(__name__)


def visible_tours(stmt: Select, include_secret: bool = False) -> Select:
    """Exclude secret tours unless explicitly asked for."""
    if include_secret:
        return stmt
    return stmt.where(Tour.secret_tour.is_not(True))


class TourService(CRUDService[Tour]):
    """Service for tour-related operations."""

    model = Tour
    resource_type = "tour"

    def base_query(self, include_secret: bool = False, **scope: Any) -> Select:
        """
        Tours with guides and start dates loaded.

        Args:
            include_secret: Also return tours flagged as secret
            scope: Column equality constraints
        """
        stmt = super().base_query(**scope).options(
            selectinload(Tour.guides),
            selectinload(Tour.start_dates),
        )
        return visible_tours(stmt, include_secret)

    def populate_options(self) -> list:
        return [selectinload(Tour.reviews).selectinload(Review.user)]

    async def reload(self, entity_id: UUID) -> Tour:
        return await self.get_by_id_or_raise(entity_id, include_secret=True)

    async def build(self, payload: CreateTourRequest) -> Tour:
        """Build a tour with its slug derived from the name."""
        data = column_values(payload.model_dump(
            exclude={"guides", "start_dates", "start_location", "locations"}
        ))
        tour = Tour(**data, slug=slugify(payload.name))
        tour.start_location = payload.start_location.model_dump() if payload.start_location else None
        tour.locations = [location.model_dump() for location in payload.locations]
        tour.start_dates = [TourStartDate(starts_at=starts_at) for starts_at in payload.start_dates]
        tour.guides = await self._resolve_guides(payload.guides)
        return tour

    async def apply_changes(self, tour: Tour, changes: dict[str, Any]) -> None:
        """Apply a partial update, keeping the slug and discount rule in step."""
        changes = dict(changes)
        if "start_dates" in changes:
            tour.start_dates = [
                TourStartDate(starts_at=starts_at) for starts_at in changes.pop("start_dates") or []
            ]
        if "guides" in changes:
            tour.guides = await self._resolve_guides(changes.pop("guides") or [])
        if changes.get("name"):
            changes["slug"] = slugify(changes["name"])
        if "locations" in changes:
            changes["locations"] = changes["locations"] or []

        await super().apply_changes(tour, changes)

        if tour.price_discount is not None and tour.price_discount >= tour.price:
            raise ValidationError(
                f"Invalid input data. Discount price ({tour.price_discount}) "
                "should be below regular price"
            )

    async def _resolve_guides(self, guide_ids: list[UUID]) -> list[User]:
        """Load guide users, failing on unknown IDs."""
        if not guide_ids:
            return []
        unique_ids = list(dict.fromkeys(guide_ids))
        result = await self.db.execute(select(User).where(User.id.in_(unique_ids)))
        users = {user.id: user for user in result.scalars()}
        missing = [str(guide_id) for guide_id in unique_ids if guide_id not in users]
        if missing:
            logger.warning("Unknown tour guides", extra={"guide_ids": missing})
            raise NotFoundError(resource_type="user", resource_id=", ".join(missing))
        return [users[guide_id] for guide_id in unique_ids]
