"""
Concurrency safety tests.

Demonstrates:
1. Concurrent bookings never overbook a trip (conditional decrement).
2. Concurrent cancellations of one booking release its seat once.
3. Concurrent duplicate reviews: exactly one is accepted.  Concurrent
   reviews by different authors leave ``avg_rating`` equal to the mean.
4. Distributed lock used by the status worker.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql

from src.domain.entities import InvalidStateTransition
from src.domain.enums import BookingStatus, TripStatus
from src.domain.errors import NoAvailableSeats, ReviewAlreadyPresent
from src.infrastructure.locks import DistributedLock
from src.infrastructure.repositories import ReviewRepository, TripRepository
from src.services.bookings import change_booking_status, create_booking
from src.services.reviews import create_review


async def _try_book(session_factory, trip_id: int, passenger_id: int):
    async with session_factory() as session:
        try:
            booking = await create_booking(session, trip_id, passenger_id)
            await session.commit()
            return booking.id
        except NoAvailableSeats:
            await session.rollback()
            return None


async def _try_cancel(session_factory, booking_id: int) -> bool:
    async with session_factory() as session:
        try:
            await change_booking_status(session, booking_id, BookingStatus.CANCELLED)
            await session.commit()
            return True
        except InvalidStateTransition:
            await session.rollback()
            return False


class TestConcurrentBookings:
    @pytest.mark.asyncio
    async def test_four_seats_five_requests(self, session_factory, make_trip, make_user):
        trip_id = await make_trip(total_seats=4)
        passengers = [await make_user() for _ in range(5)]

        results = await asyncio.gather(
            *(_try_book(session_factory, trip_id, p) for p in passengers)
        )

        accepted = [r for r in results if r is not None]
        assert len(accepted) == 4
        assert results.count(None) == 1
        async with session_factory() as session:
            trip = await TripRepository(session).get_by_id(trip_id)
        assert trip.available_seats == 0

    @pytest.mark.asyncio
    async def test_fifth_request_after_sell_out(self, session_factory, make_trip, make_user):
        trip_id = await make_trip(total_seats=4)
        passengers = [await make_user() for _ in range(4)]
        results = await asyncio.gather(
            *(_try_book(session_factory, trip_id, p) for p in passengers)
        )
        assert None not in results

        async with session_factory() as session:
            with pytest.raises(NoAvailableSeats):
                await create_booking(session, trip_id, await make_user())

    @pytest.mark.asyncio
    async def test_double_cancel_releases_one_seat(
        self, session_factory, make_trip, make_user
    ):
        trip_id = await make_trip(total_seats=3)
        booking_ids = [
            await _try_book(session_factory, trip_id, await make_user()) for _ in range(2)
        ]

        results = await asyncio.gather(
            *(_try_cancel(session_factory, b) for b in booking_ids + booking_ids)
        )

        assert results.count(True) == 2
        async with session_factory() as session:
            trip = await TripRepository(session).get_by_id(trip_id)
        assert trip.available_seats == 3


class TestConcurrentReviews:
    @pytest.mark.asyncio
    async def test_only_one_review_per_author(
        self, session_factory, make_trip, make_user, make_booking
    ):
        trip_id = await make_trip(
            start_time=datetime.now(timezone.utc) - timedelta(hours=2),
            status=TripStatus.COMPLETED,
            available_seats=3,
        )
        author = await make_user()
        await make_booking(trip_id, author)

        async def submit(rating: int):
            async with session_factory() as session:
                try:
                    review = await create_review(
                        session, author, trip_id, "Great trip", rating
                    )
                    await session.commit()
                    return review.id
                except ReviewAlreadyPresent:
                    await session.rollback()
                    return None

        results = await asyncio.gather(submit(5), submit(3))

        assert sum(r is not None for r in results) == 1
        async with session_factory() as session:
            reviews = await ReviewRepository(session).list_by_trip(trip_id)
            trip = await TripRepository(session).get_by_id(trip_id)
        assert len(reviews) == 1
        assert trip.avg_rating == pytest.approx(reviews[0].rating)

    @pytest.mark.parametrize(
        "session_factory", ["sqlite", "postgresql"], indirect=True
    )
    @pytest.mark.asyncio
    async def test_average_matches_mean_for_concurrent_authors(
        self, session_factory, make_trip, make_user, make_booking
    ):
        trip_id = await make_trip(
            start_time=datetime.now(timezone.utc) - timedelta(hours=2),
            status=TripStatus.COMPLETED,
            available_seats=1,
        )
        authors = [await make_user() for _ in range(2)]
        for author in authors:
            await make_booking(trip_id, author)

        average = ReviewRepository.average_rating_by_trip

        async def slow_average(self, trip_id):
            # Hold the computed value across a scheduling point before the trip write
            value = await average(self, trip_id)
            await asyncio.sleep(0.2)
            return value

        async def submit(author: int, rating: int):
            async with session_factory() as session:
                await create_review(session, author, trip_id, "Fine trip", rating)
                await session.commit()

        with patch.object(ReviewRepository, "average_rating_by_trip", slow_average):
            await asyncio.gather(submit(authors[0], 5), submit(authors[1], 1))

        async with session_factory() as session:
            ratings = [r.rating for r in await ReviewRepository(session).list_by_trip(trip_id)]
            trip = await TripRepository(session).get_by_id(trip_id)
        assert sorted(ratings) == [1, 5]
        assert trip.avg_rating == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_review_locks_trip_row(
        self, session_factory, make_trip, make_user, make_booking
    ):
        trip_id = await make_trip(
            start_time=datetime.now(timezone.utc) - timedelta(hours=2),
            status=TripStatus.COMPLETED,
            available_seats=3,
        )
        author = await make_user()
        await make_booking(trip_id, author)

        trip_reads: list[str] = []

        def capture(state):
            if state.is_select:
                sql = str(state.statement.compile(dialect=postgresql.dialect()))
                if "FROM trips" in sql:
                    trip_reads.append(sql)

        async with session_factory() as session:
            event.listen(session.sync_session, "do_orm_execute", capture)
            await create_review(session, author, trip_id, "Great trip", 4)
            await session.commit()

        assert trip_reads
        assert "FOR UPDATE" in trip_reads[0]


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "trip_status_worker", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:trip_status_worker", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "trip_status_worker", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_only_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=0)

        lock = DistributedLock(mock_redis, "trip_status_worker")
        await lock.acquire()

        assert await lock.release() is False
        args = mock_redis.eval.await_args.args
        assert args[1:] == (1, "lock:trip_status_worker", lock.token)
