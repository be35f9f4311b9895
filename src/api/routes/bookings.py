"""
Booking endpoints
=================

POST  /api/v1/bookings              -- book one seat (status ``pending``)
GET   /api/v1/bookings/{booking_id} -- fetch a booking
PATCH /api/v1/bookings/{booking_id} -- confirm or cancel a booking
GET   /api/v1/bookings/driver/{driver_id}/trip/{trip_id}/pending
                                    -- requests awaiting the driver's answer
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import (
    BookingCreateRequest,
    BookingResponse,
    BookingUpdateRequest,
    ErrorResponse,
)
from src.config import settings
from src.domain.enums import BookingStatus
from src.domain.errors import NotFound
from src.infrastructure.repositories import BookingRepository, TripRepository
from src.services import bookings as booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Book a seat",
    responses={
        404: {"model": ErrorResponse, "description": "Trip or passenger not found."},
        409: {
            "model": ErrorResponse,
            "description": "Trip not bookable or no seats left.",
        },
    },
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.create_booking(db, body.trip_id, body.passenger_id)


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get a booking")
@limiter.limit(settings.rate_limit)
async def get_booking(
    request: Request,
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingRepository(db).get_by_id(booking_id)
    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


@router.patch(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Confirm or cancel a booking",
    description="Cancelling returns the seat to the trip.",
)
@limiter.limit(settings.rate_limit)
async def update_booking(
    request: Request,
    booking_id: int,
    body: BookingUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.change_booking_status(db, booking_id, body.status)


@router.get(
    "/driver/{driver_id}/trip/{trip_id}/pending",
    response_model=list[BookingResponse],
    summary="Pending bookings of a driver's trip",
)
@limiter.limit(settings.rate_limit)
async def list_pending_bookings(
    request: Request,
    driver_id: int,
    trip_id: int,
    db: AsyncSession = Depends(get_db),
):
    trip = await TripRepository(db).get_by_id(trip_id)
    if not trip or trip.driver_id != driver_id:
        raise NotFound(f"Trip {trip_id} of driver {driver_id} not found")
    return await BookingRepository(db).list_by_trip(
        trip_id, status=BookingStatus.PENDING
    )
