"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Every mutation of a trip row that can race
with another actor (seat counters, lifecycle status) is a single
conditional ``UPDATE``; callers learn the outcome from the row count
instead of reading the row first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, CarModel, ReviewModel, TripModel, UserModel
from src.domain.enums import BookingStatus, TripStatus


def as_utc(value: datetime) -> datetime:
    """Normalise to an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class StatusAdvance:
    """Row counts of one bulk status advance."""

    started: int = 0
    completed: int = 0

    @property
    def total(self) -> int:
        return self.started + self.completed


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        driver_id: int,
        car_id: int,
        from_city: str,
        to_city: str,
        start_time: datetime,
        duration_min: int,
        total_seats: int,
        price: int,
        status: TripStatus = TripStatus.SCHEDULED,
    ) -> TripModel:
        start_time = as_utc(start_time)
        trip = TripModel(
            driver_id=driver_id,
            car_id=car_id,
            from_city=from_city,
            to_city=to_city,
            start_time=start_time,
            duration_min=duration_min,
            end_time=start_time + timedelta(minutes=duration_min),
            total_seats=total_seats,
            available_seats=total_seats,
            price=price,
            status=status,
            avg_rating=0.0,
        )
        self.session.add(trip)
        await self.session.flush()
        return trip

    async def get_by_id(self, trip_id: int, fresh: bool = False) -> Optional[TripModel]:
        """``fresh=True`` bypasses the identity map and re-reads the row."""
        return await self.session.get(TripModel, trip_id, populate_existing=fresh)

    async def get_for_update(self, trip_id: int) -> Optional[TripModel]:
        """Re-read the trip and hold its row lock until the transaction ends."""
        result = await self.session.execute(
            select(TripModel)
            .where(TripModel.id == trip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find(
        self,
        from_city: str | None = None,
        to_city: str | None = None,
        status: TripStatus | None = None,
    ) -> list[TripModel]:
        query = select(TripModel).order_by(TripModel.start_time)
        if from_city:
            query = query.where(TripModel.from_city == from_city)
        if to_city:
            query = query.where(TripModel.to_city == to_city)
        if status:
            query = query.where(TripModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def advance_statuses_due_by(self, now: datetime) -> StatusAdvance:
        """
        Promote every trip whose time window has elapsed at *now*.

        Two set-based updates, start predicate first, so a trip whose whole
        window is over reaches ``COMPLETED`` in one call.  Trips already in
        the target state (or cancelled) match neither predicate, which makes
        repeated calls for the same *now* a no-op.
        """
        now = as_utc(now)
        started = await self.session.execute(
            update(TripModel)
            .where(
                TripModel.status == TripStatus.SCHEDULED,
                TripModel.start_time <= now,
            )
            .values(status=TripStatus.IN_PROGRESS)
            .execution_options(synchronize_session=False)
        )
        completed = await self.session.execute(
            update(TripModel)
            .where(
                TripModel.status == TripStatus.IN_PROGRESS,
                TripModel.end_time <= now,
            )
            .values(status=TripStatus.COMPLETED)
            .execution_options(synchronize_session=False)
        )
        return StatusAdvance(started=started.rowcount, completed=completed.rowcount)

    async def decrement_seat_if_available(self, trip_id: int) -> bool:
        """Take one seat from a scheduled trip.  False if nothing matched."""
        result = await self.session.execute(
            update(TripModel)
            .where(
                TripModel.id == trip_id,
                TripModel.status == TripStatus.SCHEDULED,
                TripModel.available_seats > 0,
            )
            .values(available_seats=TripModel.available_seats - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_seat(self, trip_id: int) -> bool:
        """Give one seat back, never beyond ``total_seats``."""
        result = await self.session.execute(
            update(TripModel)
            .where(
                TripModel.id == trip_id,
                TripModel.available_seats < TripModel.total_seats,
            )
            .values(available_seats=TripModel.available_seats + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update_average_rating(self, trip_id: int, value: float) -> None:
        await self.session.execute(
            update(TripModel)
            .where(TripModel.id == trip_id)
            .values(avg_rating=value)
            .execution_options(synchronize_session=False)
        )

    async def transition_status(
        self, trip_id: int, from_status: TripStatus, to_status: TripStatus
    ) -> bool:
        """Compare-and-swap on the trip status; False if the worker got there first."""
        result = await self.session.execute(
            update(TripModel)
            .where(
                TripModel.id == trip_id,
                TripModel.status == from_status,
            )
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: int, fresh: bool = False) -> Optional[BookingModel]:
        return await self.session.get(
            BookingModel, booking_id, populate_existing=fresh
        )

    async def list_by_trip(
        self, trip_id: int, status: BookingStatus | None = None
    ) -> list[BookingModel]:
        query = (
            select(BookingModel)
            .where(BookingModel.trip_id == trip_id)
            .order_by(BookingModel.id)
        )
        if status:
            query = query.where(BookingModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def exists_for_passenger(
        self, trip_id: int, passenger_id: int, status: BookingStatus
    ) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(BookingModel)
            .where(
                BookingModel.trip_id == trip_id,
                BookingModel.passenger_id == passenger_id,
                BookingModel.status == status,
            )
        )
        return (result.scalar() or 0) > 0

    async def transition_status(
        self, booking_id: int, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        """Compare-and-swap on the booking status."""
        result = await self.session.execute(
            update(BookingModel)
            .where(
                BookingModel.id == booking_id,
                BookingModel.status == from_status,
            )
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class ReviewRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, review: ReviewModel) -> ReviewModel:
        self.session.add(review)
        await self.session.flush()
        return review

    async def exists_by_trip_and_author(self, trip_id: int, author_id: int) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(ReviewModel)
            .where(
                ReviewModel.trip_id == trip_id,
                ReviewModel.author_id == author_id,
            )
        )
        return (result.scalar() or 0) > 0

    async def average_rating_by_trip(self, trip_id: int) -> float:
        result = await self.session.execute(
            select(func.avg(ReviewModel.rating)).where(ReviewModel.trip_id == trip_id)
        )
        # PostgreSQL returns NUMERIC (Decimal) for AVG over integers
        value = result.scalar()
        return float(value) if value is not None else 0.0

    async def list_by_trip(self, trip_id: int) -> list[ReviewModel]:
        result = await self.session.execute(
            select(ReviewModel)
            .where(ReviewModel.trip_id == trip_id)
            .order_by(ReviewModel.id)
        )
        return list(result.scalars().all())


class CarRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, car: CarModel) -> CarModel:
        self.session.add(car)
        await self.session.flush()
        return car

    async def get_by_id(self, car_id: int) -> Optional[CarModel]:
        return await self.session.get(CarModel, car_id)


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_phone(self, phone: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.phone == phone)
        )
        return result.scalar_one_or_none()
