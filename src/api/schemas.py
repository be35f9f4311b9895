"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.domain.enums import BookingStatus, TripStatus


# ── Requests ──────────────────────────────────────────────────────────


class UserCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=3, max_length=20)
    balance: int = Field(0, ge=0)


class CarCreateRequest(BaseModel):
    owner_id: int = Field(..., gt=0)
    brand: str = Field(..., min_length=1, max_length=255)
    car_model: str = Field(..., min_length=1, max_length=255)
    seats: int = Field(..., ge=1, le=20)


class TripCreateRequest(BaseModel):
    driver_id: int = Field(..., gt=0)
    car_id: int = Field(..., gt=0)
    from_city: str = Field(..., min_length=1, max_length=100)
    to_city: str = Field(..., min_length=1, max_length=100)
    start_time: datetime = Field(..., description="Departure time; naive values are UTC.")
    duration_min: int = Field(..., ge=0)
    total_seats: int = Field(..., ge=1)
    price: int = Field(..., ge=0)


class BookingCreateRequest(BaseModel):
    trip_id: int = Field(..., gt=0)
    passenger_id: int = Field(..., gt=0)


class BookingUpdateRequest(BaseModel):
    status: BookingStatus


class ReviewCreateRequest(BaseModel):
    author_id: int = Field(..., gt=0)
    text: str = Field(..., min_length=3)
    rating: int = Field(..., ge=1, le=5)


# ── Responses ─────────────────────────────────────────────────────────


class UserResponse(BaseModel):
    id: int
    name: str
    phone: str
    balance: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CarResponse(BaseModel):
    id: int
    owner_id: int
    brand: str
    car_model: str
    seats: int

    model_config = {"from_attributes": True}


class TripResponse(BaseModel):
    id: int
    driver_id: int
    car_id: int
    from_city: str
    to_city: str
    start_time: datetime
    duration_min: int
    end_time: datetime
    total_seats: int
    available_seats: int
    price: int
    status: TripStatus
    avg_rating: float
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    trip_id: int
    passenger_id: int
    status: BookingStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    id: int
    author_id: int
    trip_id: int
    text: str
    rating: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StatusAdvanceResponse(BaseModel):
    at: datetime
    started: int
    completed: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    error: str
