"""
Review endpoints
================

POST /api/v1/trips/{trip_id}/reviews -- review a completed trip
GET  /api/v1/trips/{trip_id}/reviews -- reviews of a trip
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import ErrorResponse, ReviewCreateRequest, ReviewResponse
from src.config import settings
from src.domain.errors import NotFound
from src.infrastructure.repositories import ReviewRepository, TripRepository
from src.services import reviews as review_service

router = APIRouter(prefix="/trips", tags=["reviews"])


@router.post(
    "/{trip_id}/reviews",
    status_code=201,
    response_model=ReviewResponse,
    summary="Review a completed trip",
    responses={
        403: {"model": ErrorResponse, "description": "Author was not a passenger."},
        404: {"model": ErrorResponse, "description": "Trip not found."},
        409: {
            "model": ErrorResponse,
            "description": "Trip not completed or already reviewed by the author.",
        },
    },
)
@limiter.limit(settings.rate_limit)
async def create_review(
    request: Request,
    trip_id: int,
    body: ReviewCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await review_service.create_review(
        db,
        author_id=body.author_id,
        trip_id=trip_id,
        text=body.text,
        rating=body.rating,
    )


@router.get(
    "/{trip_id}/reviews",
    response_model=list[ReviewResponse],
    summary="List reviews of a trip",
)
@limiter.limit(settings.rate_limit)
async def list_reviews(
    request: Request,
    trip_id: int,
    db: AsyncSession = Depends(get_db),
):
    if not await TripRepository(db).get_by_id(trip_id):
        raise NotFound(f"Trip {trip_id} not found")
    return await ReviewRepository(db).list_by_trip(trip_id)
