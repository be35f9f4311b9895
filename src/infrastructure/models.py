"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``     -- drivers and passengers
* ``cars``      -- vehicles owned by drivers
* ``trips``     -- scheduled rides with a bounded seat inventory
* ``bookings``  -- one seat on a trip for one passenger
* ``reviews``   -- one rating per (trip, author)

Constraints
-----------
* ``trips.available_seats`` is bounded by ``0`` and ``total_seats`` at the
  database level, so even a buggy writer cannot overbook.
* ``reviews`` carry a unique (trip_id, author_id) pair; concurrent duplicate
  submissions fail on insert.

Indexes
-------
* **B-Tree** on ``trips.status`` + ``start_time`` / ``end_time`` for the
  status worker's bulk update, and on every foreign key.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base
from src.domain.enums import BookingStatus, TripStatus


def _enum_column(enum_cls):
    # Persist the lowercase values ("in_progress"), not the member names.
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), unique=True, nullable=False)
    balance = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_users_balance"),)


class CarModel(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    brand = Column(String(255), nullable=False)
    car_model = Column(String(255), nullable=False)
    seats = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("seats > 0", name="ck_cars_seats"),
        Index("idx_cars_owner", "owner_id"),
    )


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False)
    from_city = Column(String(100), nullable=False)
    to_city = Column(String(100), nullable=False)

    start_time = Column(DateTime(timezone=True), nullable=False)
    duration_min = Column(Integer, nullable=False)
    # start_time + duration_min, kept in sync by the repository
    end_time = Column(DateTime(timezone=True), nullable=False)

    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    status = Column(
        _enum_column(TripStatus), default=TripStatus.SCHEDULED, nullable=False
    )
    avg_rating = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration_min >= 0", name="ck_trips_duration"),
        CheckConstraint("total_seats > 0", name="ck_trips_total_seats"),
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_trips_available_seats",
        ),
        CheckConstraint("price >= 0", name="ck_trips_price"),
        CheckConstraint(
            "avg_rating >= 0 AND avg_rating <= 5", name="ck_trips_avg_rating"
        ),
        Index("idx_trips_status_start", "status", "start_time"),
        Index("idx_trips_status_end", "status", "end_time"),
        Index("idx_trips_driver", "driver_id"),
        Index("idx_trips_route", "from_city", "to_city"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    passenger_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(
        _enum_column(BookingStatus), default=BookingStatus.PENDING, nullable=False
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_bookings_trip", "trip_id"),
        Index("idx_bookings_passenger", "passenger_id"),
        Index("idx_bookings_status", "status"),
    )


class ReviewModel(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    text = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
        UniqueConstraint("trip_id", "author_id", name="uq_reviews_trip_author"),
        Index("idx_reviews_trip", "trip_id"),
    )
