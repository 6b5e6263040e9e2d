"""Tour router: CRUD, aliases, reports and nested reviews."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_current_user_id, get_db
from ..core.query_features import parse_query_params
from ..schemas.report import DifficultyStats, MonthlyPlanEntry, TourDistance
from ..schemas.review import CreateReviewRequest
from ..schemas.tour import CreateTourRequest, Tour, TourDetail, UpdateTourRequest
from ..services.report_service import ReportService
from ..services.tour_service import TourService
from .handler_factory import Resource, create_document, envelope, list_documents, register_crud_routes
from .review import review_resource

router = APIRouter(prefix="/api/v1/tours", tags=["tours"])

tour_resource = Resource(
    service_class=TourService,
    entity="tour",
    collection="tours",
    create_schema=CreateTourRequest,
    update_schema=UpdateTourRequest,
    read_schema=Tour,
    detail_schema=TourDetail,
    populate=True,
)

# Query preset behind /top-5-cheap
TOP_CHEAP_PARAMS = {
    "limit": "5",
    "sort": "-ratingsAverage,price",
    "fields": "name,price,ratingsAverage,summary,difficulty",
}


@router.get("/top-5-cheap", summary="Five best-rated tours, cheapest first")
async def top_five_cheap(request: Request, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """Alias for the tour list with a fixed limit, sort and projection."""
    params = parse_query_params(request.query_params.multi_items())
    params.update(TOP_CHEAP_PARAMS)
    return await list_documents(tour_resource, params, db)


@router.get("/tour-stats", summary="Statistics per difficulty")
async def get_tour_stats(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    rows = await ReportService(db).tour_stats()
    stats = [DifficultyStats.model_validate(row).to_json() for row in rows]
    return JSONResponse(status_code=status.HTTP_200_OK, content=envelope("stats", stats))


@router.get("/monthly-plan/{year}", summary="Tour starts per month of a year")
async def get_monthly_plan(year: int, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    rows = await ReportService(db).monthly_plan(year)
    plan = [MonthlyPlanEntry.model_validate(row).to_json() for row in rows]
    return JSONResponse(status_code=status.HTTP_200_OK, content=envelope("plan", plan, results=len(plan)))


@router.get(
    "/tours-within/{distance}/center/{latlng}/unit/{unit}",
    summary="Tours starting within a radius of a point",
)
async def get_tours_within(
    distance: float,
    latlng: str,
    unit: str,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Tours whose start location is within ``distance`` of ``latlng``.

    Example: ``/tours-within/200/center/34.111745,-118.113491/unit/mi``
    """
    tours = await ReportService(db).tours_within(distance, latlng, unit)
    data = [Tour.model_validate(tour).to_json() for tour in tours]
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=envelope("tours", data, results=len(data)),
    )


@router.get("/distances/{latlng}/unit/{unit}", summary="Distance to every tour start")
async def get_distances(latlng: str, unit: str, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    rows = await ReportService(db).distances(latlng, unit)
    distances = [TourDistance.model_validate(row).to_json() for row in rows]
    return JSONResponse(status_code=status.HTTP_200_OK, content=envelope("distances", distances))


@router.get("/{tour_id}/reviews", summary="Reviews of one tour")
async def get_tour_reviews(
    tour_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    params = parse_query_params(request.query_params.multi_items())
    return await list_documents(review_resource, params, db, tour_id=tour_id)


@router.post("/{tour_id}/reviews", status_code=status.HTTP_201_CREATED, summary="Review a tour")
async def create_tour_review(
    tour_id: UUID,
    payload: CreateReviewRequest,
    db: AsyncSession = Depends(get_db),
    current_user_id: Optional[UUID] = Depends(get_current_user_id),
) -> JSONResponse:
    """Create a review for the tour in the path; the user defaults to the caller."""
    payload = payload.model_copy(update={
        "tour": payload.tour or tour_id,
        "user": payload.user or current_user_id,
    })
    return await create_document(review_resource, payload, db)


register_crud_routes(router, tour_resource)
