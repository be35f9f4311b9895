"""
Booking Admission Control
=========================

Creates bookings only while the trip has a free seat and keeps
``trips.available_seats`` consistent under concurrent requests.

Concurrency safety
------------------
* A seat is taken with one conditional ``UPDATE ... WHERE status =
  'scheduled' AND available_seats > 0``.  Two requests racing for the
  last seat cannot both match, and a trip the status worker has just
  started no longer matches either.
* The seat decrement and the booking insert share the caller's
  transaction, so they commit together or not at all.
* Booking status changes are compare-and-swap on the current status, so
  a double cancellation releases the seat once.

The caller owns the session and commits it (see ``src.api.dependencies``).
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import Booking, InvalidStateTransition
from src.domain.enums import BookingStatus, TripStatus
from src.domain.errors import NoAvailableSeats, NotFound, TripNotBookable
from src.infrastructure.models import BookingModel
from src.infrastructure.repositories import (
    BookingRepository,
    TripRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


async def create_booking(
    session: AsyncSession, trip_id: int, passenger_id: int
) -> BookingModel:
    """Reserve one seat on *trip_id* for *passenger_id* (status ``pending``)."""
    trips = TripRepository(session)

    if await UserRepository(session).get_by_id(passenger_id) is None:
        raise NotFound(f"User {passenger_id} not found")

    if not await trips.decrement_seat_if_available(trip_id):
        # Nothing matched: work out why from the current row
        trip = await trips.get_by_id(trip_id, fresh=True)
        if trip is None:
            raise NotFound(f"Trip {trip_id} not found")
        if trip.status != TripStatus.SCHEDULED:
            logger.info(
                "Booking rejected: trip %d is %s", trip_id, trip.status.value
            )
            raise TripNotBookable(
                f"Trip {trip_id} is {trip.status.value} and cannot be booked"
            )
        logger.info("Booking rejected: trip %d has no free seats", trip_id)
        raise NoAvailableSeats(f"Trip {trip_id} has no available seats")

    booking = await BookingRepository(session).create(
        BookingModel(
            trip_id=trip_id,
            passenger_id=passenger_id,
            status=BookingStatus.PENDING,
        )
    )
    logger.info(
        "Booking %d created: trip=%d passenger=%d", booking.id, trip_id, passenger_id
    )
    return booking


async def change_booking_status(
    session: AsyncSession, booking_id: int, new_status: BookingStatus
) -> BookingModel:
    """
    Confirm or cancel a booking.

    Cancelling gives the seat back to the trip through a bounded
    conditional increment.
    """
    bookings = BookingRepository(session)

    row = await bookings.get_by_id(booking_id, fresh=True)
    if row is None:
        raise NotFound(f"Booking {booking_id} not found")

    booking = Booking(
        id=row.id,
        trip_id=row.trip_id,
        passenger_id=row.passenger_id,
        status=BookingStatus(row.status),
    )
    previous = booking.status
    booking.transition_to(new_status)

    if not await bookings.transition_status(booking_id, previous, new_status):
        raise InvalidStateTransition(
            f"Booking {booking_id} is no longer {previous.value}"
        )

    if booking.releases_seat:
        if not await TripRepository(session).increment_seat(booking.trip_id):
            logger.warning(
                "Trip %d already at full inventory while cancelling booking %d",
                booking.trip_id,
                booking_id,
            )

    logger.info(
        "Booking %d: %s -> %s", booking_id, previous.value, new_status.value
    )
    return await bookings.get_by_id(booking_id, fresh=True)
