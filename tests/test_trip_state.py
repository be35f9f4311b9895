"""Unit tests for trip / booking state machines and the due-status rule."""

from datetime import datetime, timedelta, timezone

import pytest

from src.domain.entities import Booking, InvalidStateTransition, Review, Trip
from src.domain.enums import BookingStatus, TripStatus

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestTripStateMachine:
    def test_initial_status_is_scheduled(self):
        assert Trip().status == TripStatus.SCHEDULED

    def test_scheduled_to_in_progress(self):
        trip = Trip(status=TripStatus.SCHEDULED)
        trip.transition_to(TripStatus.IN_PROGRESS)
        assert trip.status == TripStatus.IN_PROGRESS

    def test_in_progress_to_completed(self):
        trip = Trip(status=TripStatus.IN_PROGRESS)
        trip.transition_to(TripStatus.COMPLETED)
        assert trip.status == TripStatus.COMPLETED

    def test_scheduled_to_cancelled(self):
        trip = Trip(status=TripStatus.SCHEDULED)
        trip.transition_to(TripStatus.CANCELLED)
        assert trip.status == TripStatus.CANCELLED

    # ── Invalid transitions ───────────────────────────────────────

    def test_no_regression_to_scheduled(self):
        trip = Trip(status=TripStatus.IN_PROGRESS)
        with pytest.raises(InvalidStateTransition):
            trip.transition_to(TripStatus.SCHEDULED)

    def test_completed_is_terminal(self):
        trip = Trip(status=TripStatus.COMPLETED)
        with pytest.raises(InvalidStateTransition):
            trip.transition_to(TripStatus.IN_PROGRESS)

    def test_in_progress_cannot_be_cancelled(self):
        trip = Trip(status=TripStatus.IN_PROGRESS)
        with pytest.raises(InvalidStateTransition):
            trip.transition_to(TripStatus.CANCELLED)


class TestStatusDue:
    def test_future_trip_stays_scheduled(self):
        trip = Trip(start_time=NOW + timedelta(minutes=5), duration_min=30)
        assert trip.status_due(NOW) == TripStatus.SCHEDULED

    def test_started_trip_is_in_progress(self):
        trip = Trip(start_time=NOW - timedelta(minutes=5), duration_min=30)
        assert trip.status_due(NOW) == TripStatus.IN_PROGRESS

    def test_elapsed_window_skips_straight_to_completed(self):
        trip = Trip(start_time=NOW - timedelta(seconds=1), duration_min=0)
        assert trip.status_due(NOW) == TripStatus.COMPLETED

    def test_boundaries_are_inclusive(self):
        trip = Trip(start_time=NOW, duration_min=0)
        assert trip.status_due(NOW) == TripStatus.COMPLETED

    def test_cancelled_trip_is_never_advanced(self):
        trip = Trip(
            start_time=NOW - timedelta(hours=3),
            duration_min=60,
            status=TripStatus.CANCELLED,
        )
        assert trip.status_due(NOW) == TripStatus.CANCELLED


class TestBookingStateMachine:
    def test_pending_to_confirmed(self):
        booking = Booking()
        booking.transition_to(BookingStatus.CONFIRMED)
        assert booking.status == BookingStatus.CONFIRMED
        assert not booking.releases_seat

    def test_pending_to_cancelled_releases_seat(self):
        booking = Booking()
        booking.transition_to(BookingStatus.CANCELLED)
        assert booking.releases_seat

    def test_confirmed_to_cancelled(self):
        booking = Booking(status=BookingStatus.CONFIRMED)
        booking.transition_to(BookingStatus.CANCELLED)
        assert booking.status == BookingStatus.CANCELLED

    def test_cancelled_is_terminal(self):
        booking = Booking(status=BookingStatus.CANCELLED)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.CANCELLED)

    def test_confirmed_cannot_go_back_to_pending(self):
        booking = Booking(status=BookingStatus.CONFIRMED)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.PENDING)


class TestReviewEntity:
    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValueError):
            Review(author_id=1, trip_id=1, text="fine", rating=rating)

    def test_rating_in_range(self):
        assert Review(author_id=1, trip_id=1, text="fine", rating=5).rating == 5
