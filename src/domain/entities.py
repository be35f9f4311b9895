"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Trip`` and ``Booking``: enforces valid lifecycle
  transitions (see ``TRIP_TRANSITIONS`` / ``BOOKING_TRANSITIONS``).
- ``Trip.status_due`` is the in-memory form of the worker's bulk update
  predicates; the repository expresses the same rule in SQL.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .enums import BOOKING_TRANSITIONS, TRIP_TRANSITIONS, BookingStatus, TripStatus
from .errors import DomainError


class InvalidStateTransition(DomainError):
    """Raised when a status change violates the state machine."""

    status_code = 409


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Trip:
    id: Optional[int] = None
    driver_id: int = 0
    car_id: int = 0
    from_city: str = ""
    to_city: str = ""
    start_time: Optional[datetime] = None
    duration_min: int = 0
    total_seats: int = 1
    available_seats: int = 1
    price: int = 0
    status: TripStatus = TripStatus.SCHEDULED
    avg_rating: float = 0.0

    @property
    def end_time(self) -> Optional[datetime]:
        if self.start_time is None:
            return None
        return self.start_time + timedelta(minutes=self.duration_min)

    def transition_to(self, new_status: TripStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = TRIP_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition trip from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def status_due(self, now: datetime) -> TripStatus:
        """
        Status the trip should hold at *now*.

        The start predicate is applied before the completion predicate, so
        a scheduled trip whose whole window has elapsed goes straight to
        ``COMPLETED``.
        """
        status = self.status
        if status == TripStatus.SCHEDULED and self.start_time <= now:
            status = TripStatus.IN_PROGRESS
        if status == TripStatus.IN_PROGRESS and self.end_time <= now:
            status = TripStatus.COMPLETED
        return status


@dataclass
class Booking:
    id: Optional[int] = None
    trip_id: int = 0
    passenger_id: int = 0
    status: BookingStatus = BookingStatus.PENDING

    def transition_to(self, new_status: BookingStatus) -> None:
        allowed = BOOKING_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition booking from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    @property
    def releases_seat(self) -> bool:
        return self.status == BookingStatus.CANCELLED


@dataclass(frozen=True)
class Review:
    author_id: int
    trip_id: int
    text: str
    rating: int

    def __post_init__(self) -> None:
        if not 1 <= self.rating <= 5:
            raise ValueError(f"rating must be between 1 and 5, got {self.rating}")
