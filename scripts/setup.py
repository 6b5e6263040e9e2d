#!/usr/bin/env python3
"""Setup script for the Natours API."""

import asyncio
import logging
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from natours.core.database import async_session_factory, close_db
from natours.models import Tour
from natours.schemas.review import CreateReviewRequest
from natours.schemas.tour import CreateTourRequest
from natours.schemas.user import CreateUserRequest
from natours.services import ReviewService, TourService, UserService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {"name": "Leo Gillespie", "email": "leo@example.com", "photo": "user-1.jpg"},
    {"name": "Jennifer Hardy", "email": "jennifer@example.com", "photo": "user-2.jpg"},
    {"name": "Kate Morrison", "email": "kate@example.com", "photo": "user-3.jpg"},
]

SAMPLE_TOURS = [
    {
        "name": "The Forest Hiker",
        "duration": 5,
        "maxGroupSize": 25,
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "imageCover": "tour-1-cover.jpg",
        "images": ["tour-1-1.jpg", "tour-1-2.jpg", "tour-1-3.jpg"],
        "startDates": ["2021-04-25T09:00:00Z", "2021-07-20T09:00:00Z", "2021-10-05T09:00:00Z"],
        "startLocation": {
            "coordinates": [-115.570154, 51.178456],
            "address": "224 Banff Ave, Banff, AB, Canada",
            "description": "Banff, CAN",
        },
        "locations": [
            {"coordinates": [-116.214531, 51.417611], "description": "Banff National Park", "day": 1},
            {"coordinates": [-118.076152, 52.875223], "description": "Jasper National Park", "day": 3},
        ],
    },
    {
        "name": "The Sea Explorer",
        "duration": 7,
        "maxGroupSize": 15,
        "difficulty": "medium",
        "price": 497,
        "summary": "Exploring the jaw-dropping US east coast by foot and by boat",
        "imageCover": "tour-2-cover.jpg",
        "startDates": ["2021-06-19T09:00:00Z", "2021-07-20T09:00:00Z", "2021-08-18T09:00:00Z"],
        "startLocation": {
            "coordinates": [-80.185942, 25.774772],
            "address": "301 Biscayne Blvd, Miami, FL 33132, USA",
            "description": "Miami, USA",
        },
    },
    {
        "name": "The Park Camper",
        "duration": 10,
        "maxGroupSize": 15,
        "difficulty": "medium",
        "price": 1497,
        "summary": "Breathing in Nature in America's most spectacular National Parks",
        "imageCover": "tour-3-cover.jpg",
        "startDates": ["2021-08-05T09:00:00Z", "2022-03-20T10:00:00Z", "2022-08-12T09:00:00Z"],
        "startLocation": {
            "coordinates": [-118.113491, 34.111745],
            "address": "Los Angeles, CA, USA",
            "description": "California, USA",
        },
    },
]

SAMPLE_REVIEWS = [
    ("The Forest Hiker", 0, "Amazing views and a great guide!", 5),
    ("The Forest Hiker", 1, "Long days but worth every step.", 4),
    ("The Sea Explorer", 2, "Loved the boat trips.", 4.5),
]


def run_migrations():
    """Upgrade the database schema to the latest revision."""
    logger.info("Running database migrations...")
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data():
    """Create some sample data for local development."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        existing_tours = await db.scalar(select(func.count(Tour.id)))
        if existing_tours:
            logger.info("Sample data already exists, skipping...")
            return

        user_service = UserService(db)
        users = []
        for data in SAMPLE_USERS:
            payload = CreateUserRequest.model_validate(
                {**data, "password": "test1234", "passwordConfirm": "test1234"}
            )
            users.append(await user_service.insert(payload))

        tour_service = TourService(db)
        tours = {}
        for data in SAMPLE_TOURS:
            payload = CreateTourRequest.model_validate({**data, "guides": [str(users[0].id)]})
            tour = await tour_service.insert(payload)
            tours[tour.name] = tour

        review_service = ReviewService(db)
        for tour_name, user_index, text, rating in SAMPLE_REVIEWS:
            await review_service.insert(CreateReviewRequest(
                review=text,
                rating=rating,
                tour=tours[tour_name].id,
                user=users[user_index].id,
            ))

        logger.info(
            "Sample data created: %d users, %d tours, %d reviews",
            len(users), len(tours), len(SAMPLE_REVIEWS),
        )

    await close_db()


def main():
    """Main setup function."""
    logger.info("Starting Natours API setup...")

    # Alembic drives its own event loop, so it runs before ours
    run_migrations()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn natours.main:app --reload")


if __name__ == "__main__":
    main()
