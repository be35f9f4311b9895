"""
Trip endpoints
==============

POST  /api/v1/trips                    -- publish a trip (status ``scheduled``)
GET   /api/v1/trips                    -- list trips, filtered by route / status
GET   /api/v1/trips/{trip_id}          -- trip details incl. seats and rating
PATCH /api/v1/trips/{trip_id}/cancel   -- cancel a trip that has not started
GET   /api/v1/trips/{trip_id}/bookings -- bookings of a trip

Statuses past ``scheduled`` are set by the background worker only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import BookingResponse, TripCreateRequest, TripResponse
from src.config import settings
from src.domain.entities import InvalidStateTransition, Trip
from src.domain.enums import BookingStatus, TripStatus
from src.domain.errors import DomainError, NotFound
from src.infrastructure.repositories import (
    BookingRepository,
    CarRepository,
    TripRepository,
    UserRepository,
)

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", status_code=201, response_model=TripResponse, summary="Publish a trip")
@limiter.limit(settings.rate_limit)
async def create_trip(
    request: Request,
    body: TripCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    if not await UserRepository(db).get_by_id(body.driver_id):
        raise NotFound(f"Driver {body.driver_id} not found")

    car = await CarRepository(db).get_by_id(body.car_id)
    if not car:
        raise NotFound(f"Car {body.car_id} not found")
    if car.owner_id != body.driver_id:
        raise DomainError(f"Car {car.id} does not belong to driver {body.driver_id}")
    if body.total_seats > car.seats:
        raise DomainError(f"Car {car.id} has only {car.seats} seats")

    return await TripRepository(db).create(
        driver_id=body.driver_id,
        car_id=body.car_id,
        from_city=body.from_city,
        to_city=body.to_city,
        start_time=body.start_time,
        duration_min=body.duration_min,
        total_seats=body.total_seats,
        price=body.price,
    )


@router.get("", response_model=list[TripResponse], summary="List trips")
@limiter.limit(settings.rate_limit)
async def list_trips(
    request: Request,
    from_city: Optional[str] = None,
    to_city: Optional[str] = None,
    status: Optional[TripStatus] = None,
    db: AsyncSession = Depends(get_db),
):
    return await TripRepository(db).find(
        from_city=from_city, to_city=to_city, status=status
    )


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: int,
    db: AsyncSession = Depends(get_db),
):
    trip = await TripRepository(db).get_by_id(trip_id)
    if not trip:
        raise NotFound(f"Trip {trip_id} not found")
    return trip


@router.patch(
    "/{trip_id}/cancel",
    response_model=TripResponse,
    summary="Cancel a trip",
    description="Only a ``scheduled`` trip can be cancelled; the worker never touches it afterwards.",
)
@limiter.limit(settings.rate_limit)
async def cancel_trip(
    request: Request,
    trip_id: int,
    db: AsyncSession = Depends(get_db),
):
    repo = TripRepository(db)
    row = await repo.get_by_id(trip_id, fresh=True)
    if not row:
        raise NotFound(f"Trip {trip_id} not found")

    trip = Trip(id=row.id, status=TripStatus(row.status))
    previous = trip.status
    trip.transition_to(TripStatus.CANCELLED)

    if not await repo.transition_status(trip_id, previous, trip.status):
        raise InvalidStateTransition(f"Trip {trip_id} is no longer {previous.value}")
    return await repo.get_by_id(trip_id, fresh=True)


@router.get(
    "/{trip_id}/bookings",
    response_model=list[BookingResponse],
    summary="List bookings of a trip",
)
@limiter.limit(settings.rate_limit)
async def list_trip_bookings(
    request: Request,
    trip_id: int,
    status: Optional[BookingStatus] = None,
    db: AsyncSession = Depends(get_db),
):
    if not await TripRepository(db).get_by_id(trip_id):
        raise NotFound(f"Trip {trip_id} not found")
    return await BookingRepository(db).list_by_trip(trip_id, status=status)
