"""
Review Admission & Rating Aggregator
====================================

Accepts one review per (trip, author) for completed trips and keeps
``trips.avg_rating`` equal to the mean of all review ratings.

Admission checks, first failure wins:

1. trip exists                      -> ``NotFound``
2. trip is ``completed``            -> ``TripNotCompleted``
3. author rode on the trip          -> ``UserNotPassenger``
4. author has not reviewed it yet   -> ``ReviewAlreadyPresent``

The insert, the ``AVG(rating)`` recompute and the trip write run in the
caller's transaction; a failure in any of them rolls back all three.
The trip row is read ``FOR UPDATE`` first, so concurrent reviews of the
same trip take turns and no recompute overwrites a newer average.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.entities import Review
from src.domain.enums import BookingStatus, TripStatus
from src.domain.errors import (
    NotFound,
    ReviewAlreadyPresent,
    TripNotCompleted,
    UserNotPassenger,
)
from src.infrastructure.models import ReviewModel, TripModel
from src.infrastructure.repositories import (
    BookingRepository,
    ReviewRepository,
    TripRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


async def _rode_on_trip(
    session: AsyncSession, trip: TripModel, author_id: int, strict: bool
) -> bool:
    if strict:
        return await BookingRepository(session).exists_for_passenger(
            trip.id, author_id, BookingStatus.CONFIRMED
        )
    # Legacy check: "somebody booked a seat", not "this author did"
    if await UserRepository(session).get_by_id(author_id) is None:
        return False
    return trip.available_seats != trip.total_seats


async def create_review(
    session: AsyncSession,
    author_id: int,
    trip_id: int,
    text: str,
    rating: int,
    strict_passenger_check: bool | None = None,
) -> ReviewModel:
    if strict_passenger_check is None:
        strict_passenger_check = settings.strict_passenger_check
    review = Review(author_id=author_id, trip_id=trip_id, text=text, rating=rating)

    trips = TripRepository(session)
    reviews = ReviewRepository(session)

    # Reviews of one trip serialise on the trip row, so each AVG below
    # sees every rating committed before it
    trip = await trips.get_for_update(trip_id)
    if trip is None:
        raise NotFound(f"Trip {trip_id} not found")

    if trip.status != TripStatus.COMPLETED:
        logger.warning(
            "Review rejected: trip %d is %s, not completed", trip_id, trip.status.value
        )
        raise TripNotCompleted(f"Trip {trip_id} is not completed")

    if not await _rode_on_trip(session, trip, author_id, strict_passenger_check):
        logger.warning(
            "Review rejected: user %d was not a passenger of trip %d",
            author_id,
            trip_id,
        )
        raise UserNotPassenger(
            f"User {author_id} was not a passenger of trip {trip_id}"
        )

    if await reviews.exists_by_trip_and_author(trip_id, author_id):
        raise ReviewAlreadyPresent(
            f"User {author_id} already reviewed trip {trip_id}"
        )

    try:
        row = await reviews.create(
            ReviewModel(
                author_id=review.author_id,
                trip_id=review.trip_id,
                text=review.text,
                rating=review.rating,
            )
        )
    except IntegrityError:
        # A concurrent submission won the unique (trip_id, author_id) race
        await session.rollback()
        raise ReviewAlreadyPresent(
            f"User {author_id} already reviewed trip {trip_id}"
        ) from None

    avg_rating = await reviews.average_rating_by_trip(trip_id)
    await trips.update_average_rating(trip_id, avg_rating)

    logger.info(
        "Review %d stored for trip %d (rating=%d, avg=%.2f)",
        row.id,
        trip_id,
        review.rating,
        avg_rating,
    )
    return row
