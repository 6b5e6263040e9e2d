"""Test configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from natours.core.database import Base
from natours.core.dependencies import get_db
from natours.models import *  # noqa: F403 - Import all models
from natours.schemas.tour import CreateTourRequest
from natours.schemas.user import CreateUserRequest
from natours.services.tour_service import TourService
from natours.services.user_service import UserService

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_tour_data(**overrides):
    """Valid tour creation body in API (camelCase) form."""
    data = {
        "name": "The Test Wanderer",
        "duration": 5,
        "maxGroupSize": 10,
        "difficulty": "easy",
        "price": 500,
        "summary": "A tour used in tests",
        "imageCover": "tour-test-cover.jpg",
    }
    data.update(overrides)
    return data


def make_user_data(**overrides):
    data = {
        "name": "Test User",
        "email": "test.user@example.com",
        "password": "pass1234",
        "passwordConfirm": "pass1234",
    }
    data.update(overrides)
    return data


def _point(lng, lat, address):
    return {"type": "Point", "coordinates": [lng, lat], "address": address}


# Fixture tours; "The Secret Hideaway" is hidden from regular queries
SAMPLE_TOURS = [
    make_tour_data(
        name="The Forest Hiker",
        difficulty="easy",
        price=397,
        ratingsAverage=4.7,
        ratingsQuantity=37,
        startLocation=_point(-115.570154, 51.178456, "Banff, CAN"),
        startDates=["2021-04-25T09:00:00Z", "2021-07-20T09:00:00Z", "2021-10-05T09:00:00Z"],
    ),
    make_tour_data(
        name="The Sea Explorer",
        difficulty="medium",
        price=497,
        ratingsAverage=4.8,
        ratingsQuantity=23,
        startLocation=_point(-80.185942, 25.774772, "Miami, USA"),
        startDates=["2021-06-19T09:00:00Z", "2021-07-20T09:00:00Z", "2021-08-18T09:00:00Z"],
    ),
    make_tour_data(
        name="The Snow Adventurer",
        difficulty="difficult",
        price=997,
        ratingsAverage=4.5,
        ratingsQuantity=13,
        startLocation=_point(-106.822318, 39.190872, "Aspen, USA"),
        startDates=["2022-01-05T09:00:00Z", "2022-02-12T09:00:00Z", "2023-01-06T09:00:00Z"],
    ),
    make_tour_data(
        name="The City Wanderer",
        difficulty="easy",
        price=1197,
        ratingsAverage=4.6,
        ratingsQuantity=54,
        startLocation=_point(-73.985141, 40.75894, "New York, USA"),
        startDates=["2021-03-11T09:00:00Z", "2021-05-02T09:00:00Z", "2021-06-09T09:00:00Z"],
    ),
    make_tour_data(
        name="The Park Camper",
        difficulty="medium",
        price=1597,
        ratingsAverage=4.9,
        ratingsQuantity=10,
        startLocation=_point(-118.113491, 34.111745, "Los Angeles, USA"),
        startDates=["2021-08-05T09:00:00Z", "2022-03-20T09:00:00Z", "2022-08-12T09:00:00Z"],
    ),
    make_tour_data(
        name="The Secret Hideaway",
        difficulty="easy",
        price=99,
        ratingsAverage=4.9,
        ratingsQuantity=3,
        secretTour=True,
        startLocation=_point(-118.2437, 34.0522, "Los Angeles, USA"),
        startDates=["2021-07-01T09:00:00Z"],
    ),
]


@pytest.fixture
def tour_data():
    """Factory for tour creation bodies."""
    return make_tour_data


@pytest.fixture
def user_data():
    """Factory for user creation bodies."""
    return make_user_data


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """The application with its database dependency bound to the test session."""
    from natours.main import create_app

    app = create_app()

    async def override_get_db():
        try:
            yield test_session
        except Exception:
            await test_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def sample_users(test_session):
    """Two stored users: a guide and a reviewer."""
    service = UserService(test_session)
    guide = await service.insert(CreateUserRequest.model_validate(
        make_user_data(name="Lead Guide", email="guide@example.com")
    ))
    reviewer = await service.insert(CreateUserRequest.model_validate(
        make_user_data(name="Avid Reviewer", email="reviewer@example.com")
    ))
    return {"guide": guide, "reviewer": reviewer}


@pytest_asyncio.fixture(scope="function")
async def sample_tours(test_session):
    """The ``SAMPLE_TOURS`` stored, keyed by name."""
    service = TourService(test_session)
    tours = {}
    for data in SAMPLE_TOURS:
        tour = await service.insert(CreateTourRequest.model_validate(data))
        tours[tour.name] = tour
    return tours
