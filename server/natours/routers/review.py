"""Review router."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_current_user_id, get_db
from ..schemas.review import CreateReviewRequest, Review, UpdateReviewRequest
from ..services.review_service import ReviewService
from .handler_factory import Resource, create_document, register_crud_routes

router = APIRouter(prefix="/api/v1/reviews", tags=["reviews"])

review_resource = Resource(
    service_class=ReviewService,
    entity="review",
    collection="reviews",
    create_schema=CreateReviewRequest,
    update_schema=UpdateReviewRequest,
    read_schema=Review,
)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a review")
async def create_review(
    payload: CreateReviewRequest,
    db: AsyncSession = Depends(get_db),
    current_user_id: Optional[UUID] = Depends(get_current_user_id),
) -> JSONResponse:
    """Create a review; without a ``user`` in the body the caller is the author."""
    if payload.user is None and current_user_id is not None:
        payload = payload.model_copy(update={"user": current_user_id})
    return await create_document(review_resource, payload, db)


register_crud_routes(router, review_resource, operations=("get_all", "get_one", "update", "delete"))
