"""Aggregation reports over the tour collection."""

import logging
import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError
from ..models.tour import Tour, TourStartDate
from .tour_service import TourService, visible_tours

logger = logging.getLogger(__name__)

# Sphere radius per unit, used to turn a distance into radians
EARTH_RADIUS = {"mi": 3963.2, "km": 6378.1}
# Metres to unit
DISTANCE_MULTIPLIER = {"mi": 0.000621371, "km": 0.001}
EARTH_RADIUS_METERS = 6378100

STATS_MIN_RATING = 4.5
MAX_PLAN_ROWS = 12


def parse_latlng(latlng: str) -> tuple[float, float]:
    """
    Parse a ``"lat,lng"`` pair.

    Raises:
        BadRequestError: If the pair is missing, malformed or out of range
    """
    parts = [part.strip() for part in (latlng or "").split(",")]
    try:
        lat, lng = (float(part) for part in parts)
    except ValueError:
        raise BadRequestError("Please provide latitude and longitude in the format lat,lng.")

    if not (math.isfinite(lat) and math.isfinite(lng)) or not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise BadRequestError("Please provide latitude and longitude in the format lat,lng.")
    return lat, lng


def check_unit(unit: str) -> str:
    if unit not in EARTH_RADIUS:
        raise BadRequestError(f"Invalid unit: {unit}. Use 'mi' or 'km'.")
    return unit


def central_angle(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle angle in radians between two points given in degrees."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(a)))


class ReportService:
    """
    Fixed reports over visible tours.

    Grouping that depends on database-specific date or geometry functions
    is folded in Python after a narrowing SQL query, so the same reports run
    on PostgreSQL and SQLite.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def tour_stats(self) -> list[dict[str, Any]]:
        """
        Statistics per difficulty for tours rated 4.5 and above.

        Returns:
            One row per difficulty, cheapest average price first
        """
        difficulty = func.upper(Tour.difficulty).label("difficulty")
        avg_price = func.avg(Tour.price).label("avg_price")
        stmt = visible_tours(
            select(
                difficulty,
                func.count(Tour.id).label("num_tours"),
                func.sum(Tour.ratings_quantity).label("num_ratings"),
                func.avg(Tour.ratings_average).label("avg_rating"),
                avg_price,
                func.min(Tour.price).label("min_price"),
                func.max(Tour.price).label("max_price"),
            )
            .where(Tour.ratings_average >= STATS_MIN_RATING)
            .group_by(difficulty)
            .order_by(avg_price)
        )
        result = await self.db.execute(stmt)

        return [
            {
                "difficulty": row.difficulty,
                "num_tours": row.num_tours,
                "num_ratings": int(row.num_ratings or 0),
                "avg_rating": float(row.avg_rating),
                "avg_price": float(row.avg_price),
                "min_price": float(row.min_price),
                "max_price": float(row.max_price),
            }
            for row in result
        ]

    async def monthly_plan(self, year: int) -> list[dict[str, Any]]:
        """
        Tour starts per calendar month of ``year``.

        Args:
            year: Calendar year, 1 to 9999

        Returns:
            At most 12 rows, busiest month first, month ascending on ties

        Raises:
            BadRequestError: If the year is out of range
        """
        if not 1 <= year <= 9999:
            raise BadRequestError(f"Invalid year: {year}")

        start = datetime(year, 1, 1, tzinfo=timezone.utc)
        end = datetime(year, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)
        stmt = visible_tours(
            select(TourStartDate.starts_at, Tour.name)
            .join(Tour, TourStartDate.tour_id == Tour.id)
            .where(TourStartDate.starts_at >= start, TourStartDate.starts_at <= end)
            .order_by(TourStartDate.starts_at, Tour.name)
        )
        result = await self.db.execute(stmt)

        tours_by_month: dict[int, list[str]] = defaultdict(list)
        for starts_at, name in result:
            tours_by_month[starts_at.month].append(name)

        plan = [
            {"month": month, "num_tour_starts": len(names), "tours": names}
            for month, names in tours_by_month.items()
        ]
        plan.sort(key=lambda row: (-row["num_tour_starts"], row["month"]))

        logger.info("Monthly plan computed", extra={"year": year, "months": len(plan)})
        return plan[:MAX_PLAN_ROWS]

    async def tours_within(self, distance: float, latlng: str, unit: str) -> list[Tour]:
        """
        Visible tours starting within ``distance`` of a point.

        Args:
            distance: Radius in ``unit``, greater than zero
            latlng: Centre as ``"lat,lng"``
            unit: ``mi`` or ``km``

        Raises:
            BadRequestError: On a malformed point, unit or distance
        """
        lat, lng = parse_latlng(latlng)
        unit = check_unit(unit)
        if not math.isfinite(distance) or distance <= 0:
            raise BadRequestError(f"Invalid distance: {distance}")

        radius = distance / EARTH_RADIUS[unit]

        stmt = TourService(self.db).base_query().where(
            Tour.start_location_lat.is_not(None),
            Tour.start_location_lng.is_not(None),
        )
        # Latitude band around the centre; longitude wraps, so it is checked exactly below
        if radius < math.pi:
            band = math.degrees(radius)
            stmt = stmt.where(Tour.start_location_lat.between(lat - band, lat + band))

        result = await self.db.execute(stmt.order_by(Tour.name))
        tours = [
            tour
            for tour in result.scalars().unique()
            if central_angle(lat, lng, tour.start_location_lat, tour.start_location_lng) <= radius
        ]

        logger.info(
            "Tours within radius",
            extra={"latlng": latlng, "distance": distance, "unit": unit, "results": len(tours)}
        )
        return tours

    async def distances(self, latlng: str, unit: str) -> list[dict[str, Any]]:
        """
        Distance from a point to the start of every visible tour.

        Returns:
            Rows of ``id``, ``name`` and ``distance`` in ``unit``, nearest first
        """
        lat, lng = parse_latlng(latlng)
        unit = check_unit(unit)

        stmt = visible_tours(
            select(Tour.id, Tour.name, Tour.start_location_lat, Tour.start_location_lng)
            .where(Tour.start_location_lat.is_not(None), Tour.start_location_lng.is_not(None))
        )
        result = await self.db.execute(stmt)

        rows = [
            {
                "id": row.id,
                "name": row.name,
                "distance": central_angle(lat, lng, row.start_location_lat, row.start_location_lng)
                * EARTH_RADIUS_METERS
                * DISTANCE_MULTIPLIER[unit],
            }
            for row in result
        ]
        rows.sort(key=lambda row: (row["distance"], row["name"]))
        return rows
