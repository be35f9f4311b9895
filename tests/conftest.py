"""
Shared test fixtures.

Uses a throw-away SQLite file per test (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  A file rather than ``:memory:`` gives every
session its own connection, which the concurrency tests rely on: SQLite
then serialises the conditional updates exactly like a real server would.

Tests that parametrize ``session_factory`` with ``"postgresql"`` run
against ``TEST_DATABASE_URL`` (a ``postgresql+asyncpg://`` URL) and are
skipped when it is not set.
"""

import itertools
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.domain.enums import BookingStatus, TripStatus
from src.infrastructure.database import Base
from src.infrastructure.models import BookingModel, CarModel, UserModel
from src.infrastructure.repositories import TripRepository

_phones = itertools.count(1)


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(request, tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create the schema in a fresh database and hand out sessions."""
    backend = getattr(request, "param", "sqlite")
    if backend == "postgresql":
        url = os.environ.get("TEST_DATABASE_URL")
        if not url:
            pytest.skip("TEST_DATABASE_URL is not set")
    else:
        url = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"

    engine = create_async_engine(url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    if backend == "postgresql":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Data builders ─────────────────────────────────────────────────────


@pytest.fixture
def make_user(session_factory):
    async def _make(name: str = "Passenger") -> int:
        async with session_factory() as session:
            user = UserModel(name=name, phone=f"+7900{next(_phones):07d}", balance=0)
            session.add(user)
            await session.commit()
            return user.id

    return _make


@pytest.fixture
def make_trip(session_factory, make_user):
    """Commit a trip and return its id.  Defaults: scheduled, 4 seats, starts in 1 h."""

    async def _make(
        *,
        start_time: datetime | None = None,
        duration_min: int = 60,
        total_seats: int = 4,
        available_seats: int | None = None,
        status: TripStatus = TripStatus.SCHEDULED,
    ) -> int:
        driver_id = await make_user("Driver")
        async with session_factory() as session:
            car = CarModel(owner_id=driver_id, brand="Lada", car_model="Vesta", seats=8)
            session.add(car)
            await session.flush()
            trip = await TripRepository(session).create(
                driver_id=driver_id,
                car_id=car.id,
                from_city="Grozny",
                to_city="Makhachkala",
                start_time=start_time or datetime.now(timezone.utc) + timedelta(hours=1),
                duration_min=duration_min,
                total_seats=total_seats,
                price=900,
                status=status,
            )
            if available_seats is not None:
                trip.available_seats = available_seats
            await session.commit()
            return trip.id

    return _make


@pytest.fixture
def make_booking(session_factory):
    """Insert a booking row directly (no seat accounting)."""

    async def _make(
        trip_id: int, passenger_id: int, status: BookingStatus = BookingStatus.CONFIRMED
    ) -> int:
        async with session_factory() as session:
            booking = BookingModel(
                trip_id=trip_id, passenger_id=passenger_id, status=status
            )
            session.add(booking)
            await session.commit()
            return booking.id

    return _make


# ── HTTP client ───────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test database; the status worker is not started."""

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    from src.api.app import create_app
    from src.api.dependencies import get_db
    from src.api.middleware import limiter

    limiter.reset()
    app = create_app()
    app.dependency_overrides[get_db] = _test_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
