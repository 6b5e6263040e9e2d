"""Unit tests for tour service."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select, update

from natours.core.exceptions import ConflictError, DuplicateKeyError, NotFoundError, ValidationError
from natours.models import Tour, TourStartDate
from natours.schemas.tour import CreateTourRequest, UpdateTourRequest
from natours.services.tour_service import TourService


@pytest.mark.asyncio
async def test_create_tour(test_session, tour_data):
    """Insert derives the slug and stores start dates and location."""
    service = TourService(test_session)

    tour = await service.insert(CreateTourRequest.model_validate(tour_data(
        name="  The Forest Hiker  ",
        duration=14,
        startDates=["2021-04-25T09:00:00Z", "2021-07-20T09:00:00Z"],
        startLocation={"coordinates": [-115.570154, 51.178456], "address": "Banff, CAN"},
    )))

    assert tour.id is not None
    assert tour.name == "The Forest Hiker"
    assert tour.slug == "the-forest-hiker"
    assert tour.duration_weeks == 2
    assert tour.ratings_average == 4.5
    assert tour.ratings_quantity == 0
    assert tour.secret_tour is False
    assert tour.version == 1
    assert len(tour.start_dates) == 2
    assert tour.start_location["coordinates"] == [-115.570154, 51.178456]
    assert tour.start_location["type"] == "Point"


@pytest.mark.asyncio
async def test_create_tour_duplicate_name(test_session, tour_data):
    """Test creating a tour with a duplicate name raises error."""
    service = TourService(test_session)
    await service.insert(CreateTourRequest.model_validate(tour_data()))

    with pytest.raises(DuplicateKeyError) as exc_info:
        await service.insert(CreateTourRequest.model_validate(tour_data(price=10)))

    assert exc_info.value.status_code == 400
    assert "name" in exc_info.value.message


@pytest.mark.asyncio
async def test_create_tour_with_guides(test_session, sample_users, tour_data):
    service = TourService(test_session)
    guide = sample_users["guide"]

    tour = await service.insert(CreateTourRequest.model_validate(tour_data(guides=[str(guide.id)])))

    assert [g.name for g in tour.guides] == ["Lead Guide"]


@pytest.mark.asyncio
async def test_create_tour_unknown_guide(test_session, tour_data):
    service = TourService(test_session)

    with pytest.raises(NotFoundError):
        await service.insert(CreateTourRequest.model_validate(tour_data(guides=[str(uuid4())])))


@pytest.mark.asyncio
async def test_get_tour_by_id_not_found(test_session):
    """Test getting a non-existent tour returns None."""
    service = TourService(test_session)

    assert await service.find_by_id(uuid4()) is None
    with pytest.raises(NotFoundError):
        await service.get_by_id_or_raise(uuid4())


@pytest.mark.asyncio
async def test_secret_tour_is_hidden_unless_requested(test_session, tour_data):
    service = TourService(test_session)
    tour = await service.insert(CreateTourRequest.model_validate(tour_data(secretTour=True)))

    assert await service.find_by_id(tour.id) is None
    found = await service.find_by_id(tour.id, include_secret=True)
    assert found is not None and found.secret_tour is True


@pytest.mark.asyncio
async def test_find_excludes_secret_tours(test_session, sample_tours):
    service = TourService(test_session)

    tours = await service.find(service.query_features({}).filter().sort().paginate())

    names = {tour.name for tour in tours}
    assert len(names) == 5
    assert "The Secret Hideaway" not in names


@pytest.mark.asyncio
async def test_update_name_recomputes_slug(test_session, tour_data):
    service = TourService(test_session)
    tour = await service.insert(CreateTourRequest.model_validate(tour_data()))

    updated = await service.update_by_id(tour.id, UpdateTourRequest(name="The Mountain Biker"))

    assert updated.slug == "the-mountain-biker"
    assert updated.price == 500
    assert updated.version == 2


@pytest.mark.asyncio
async def test_update_replaces_start_dates(test_session, tour_data):
    service = TourService(test_session)
    tour = await service.insert(CreateTourRequest.model_validate(tour_data(
        startDates=["2021-04-25T09:00:00Z", "2021-07-20T09:00:00Z"],
    )))

    updated = await service.update_by_id(
        tour.id, UpdateTourRequest.model_validate({"startDates": ["2022-01-01T09:00:00Z"]})
    )

    assert [d.starts_at.year for d in updated.start_dates] == [2022]
    count = await test_session.scalar(select(func.count(TourStartDate.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_update_rechecks_discount_against_price(test_session, tour_data):
    service = TourService(test_session)
    tour = await service.insert(CreateTourRequest.model_validate(tour_data(price=500, priceDiscount=100)))

    with pytest.raises(ValidationError):
        await service.update_by_id(tour.id, UpdateTourRequest(price=50))


@pytest.mark.asyncio
async def test_update_rejects_null_required_field(test_session, tour_data):
    service = TourService(test_session)
    tour = await service.insert(CreateTourRequest.model_validate(tour_data()))

    with pytest.raises(ValidationError):
        await service.update_by_id(tour.id, UpdateTourRequest.model_validate({"price": None}))


@pytest.mark.asyncio
async def test_update_and_delete_missing_tour(test_session):
    service = TourService(test_session)

    assert await service.update_by_id(uuid4(), UpdateTourRequest(price=10)) is None
    assert await service.delete_by_id(uuid4()) is False


@pytest.mark.asyncio
async def test_delete_tour_removes_start_dates(test_session, tour_data):
    service = TourService(test_session)
    tour = await service.insert(CreateTourRequest.model_validate(tour_data(
        startDates=["2021-04-25T09:00:00Z"],
    )))

    assert await service.delete_by_id(tour.id) is True

    assert await service.find_by_id(tour.id) is None
    count = await test_session.scalar(select(func.count(TourStartDate.id)))
    assert count == 0


def test_create_request_rejects_discount_above_price(tour_data):
    with pytest.raises(ValueError):
        CreateTourRequest.model_validate(tour_data(price=100, priceDiscount=150))


def test_create_request_rejects_short_name(tour_data):
    with pytest.raises(ValueError):
        CreateTourRequest.model_validate(tour_data(name="Short"))


def test_create_request_normalizes_naive_start_dates_to_utc(tour_data):
    request = CreateTourRequest.model_validate(tour_data(startDates=["2021-04-25T09:00:00"]))
    assert request.start_dates[0].utcoffset().total_seconds() == 0


class InterleavedTourService(TourService):
    """Commits a competing update between reading a tour and writing it."""

    async def apply_changes(self, tour, changes):
        tours = Tour.__table__
        await self.db.execute(
            update(tours)
            .where(tours.c.id == tour.id)
            .values(price=600, version=tours.c.version + 1)
        )
        await super().apply_changes(tour, changes)


@pytest.mark.asyncio
async def test_interleaved_update_raises_conflict(test_session, tour_data):
    tour = await TourService(test_session).insert(CreateTourRequest.model_validate(tour_data()))

    with pytest.raises(ConflictError) as exc_info:
        await InterleavedTourService(test_session).update_by_id(tour.id, UpdateTourRequest(price=700))

    assert exc_info.value.status_code == 409
    assert exc_info.value.status == "fail"
    # The rejected write is rolled back; the next update succeeds
    updated = await TourService(test_session).update_by_id(tour.id, UpdateTourRequest(price=800))
    assert updated.price == 800
