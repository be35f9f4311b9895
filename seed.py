"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 sample users (3 drivers, 5 passengers)
  - 3 sample cars
  - 5 sample trips covering every lifecycle status
  - bookings on the upcoming and finished trips
  - 2 reviews on the completed trip (with its cached average rating)
"""

import asyncio
from datetime import datetime, timedelta, timezone

from src.domain.entities import Trip
from src.domain.enums import BookingStatus, TripStatus
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import (
    BookingModel,
    CarModel,
    ReviewModel,
    TripModel,
    UserModel,
)

USERS = [
    {"name": "Adam Magomedov", "phone": "+79280000001", "balance": 0},
    {"name": "Ilyas Dadaev", "phone": "+79280000002", "balance": 0},
    {"name": "Zaur Aliev", "phone": "+79280000003", "balance": 0},
    {"name": "Madina Umarova", "phone": "+79280000004", "balance": 5000},
    {"name": "Liana Saidova", "phone": "+79280000005", "balance": 3500},
    {"name": "Ruslan Batalov", "phone": "+79280000006", "balance": 1200},
    {"name": "Amina Khasanova", "phone": "+79280000007", "balance": 800},
    {"name": "Timur Isaev", "phone": "+79280000008", "balance": 2500},
]

CARS = [
    # (owner index, brand, model, seats)
    (0, "Toyota", "Camry", 4),
    (1, "Hyundai", "Solaris", 4),
    (2, "Volkswagen", "Multivan", 7),
]

# (driver index, car index, from, to, start offset, duration min, seats, price)
TRIPS = [
    (0, 0, "Grozny", "Makhachkala", timedelta(hours=6), 180, 4, 900),
    (1, 1, "Grozny", "Vladikavkaz", timedelta(days=1), 150, 3, 800),
    (2, 2, "Nalchik", "Grozny", timedelta(minutes=-30), 240, 6, 1100),
    (0, 0, "Makhachkala", "Grozny", timedelta(days=-2), 180, 4, 900),
    (1, 1, "Vladikavkaz", "Nalchik", timedelta(days=3), 120, 3, 600),
]


async def seed():
    now = datetime.now(timezone.utc)

    async with async_session_factory() as session:
        # ── Users ─────────────────────────────────────────────────────
        user_models = [UserModel(**u) for u in USERS]
        session.add_all(user_models)
        await session.flush()
        print(f"  Created {len(user_models)} users")

        # ── Cars ──────────────────────────────────────────────────────
        car_models = [
            CarModel(
                owner_id=user_models[owner].id,
                brand=brand,
                car_model=model,
                seats=seats,
            )
            for owner, brand, model, seats in CARS
        ]
        session.add_all(car_models)
        await session.flush()
        print(f"  Created {len(car_models)} cars")

        # ── Trips (status consistent with the clock) ──────────────────
        trip_models = []
        for driver, car, origin, dest, offset, duration, seats, price in TRIPS:
            start = now + offset
            status = Trip(
                start_time=start, duration_min=duration
            ).status_due(now)
            trip_models.append(
                TripModel(
                    driver_id=user_models[driver].id,
                    car_id=car_models[car].id,
                    from_city=origin,
                    to_city=dest,
                    start_time=start,
                    duration_min=duration,
                    end_time=start + timedelta(minutes=duration),
                    total_seats=seats,
                    available_seats=seats,
                    price=price,
                    status=status,
                    avg_rating=0.0,
                )
            )
        # The last one is withdrawn by its driver
        trip_models[-1].status = TripStatus.CANCELLED
        session.add_all(trip_models)
        await session.flush()
        print(f"  Created {len(trip_models)} trips")

        # ── Bookings ──────────────────────────────────────────────────
        upcoming, _, in_progress, finished, _ = trip_models
        bookings_data = [
            (upcoming, 3, BookingStatus.PENDING),
            (upcoming, 4, BookingStatus.CONFIRMED),
            (in_progress, 5, BookingStatus.CONFIRMED),
            (finished, 6, BookingStatus.CONFIRMED),
            (finished, 7, BookingStatus.CONFIRMED),
        ]
        for trip, passenger, status in bookings_data:
            session.add(
                BookingModel(
                    trip_id=trip.id,
                    passenger_id=user_models[passenger].id,
                    status=status,
                )
            )
            trip.available_seats -= 1
        await session.flush()
        print(f"  Created {len(bookings_data)} bookings")

        # ── Reviews on the completed trip ─────────────────────────────
        ratings = [(6, "Smooth ride, on time.", 5), (7, "Good driver, loud music.", 4)]
        for passenger, text, rating in ratings:
            session.add(
                ReviewModel(
                    author_id=user_models[passenger].id,
                    trip_id=finished.id,
                    text=text,
                    rating=rating,
                )
            )
        finished.avg_rating = sum(r for _, _, r in ratings) / len(ratings)
        await session.flush()
        print(f"  Created {len(ratings)} reviews")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
