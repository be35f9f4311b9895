"""
Car endpoints
=============

POST /api/v1/cars          -- register a car for a driver
GET  /api/v1/cars/{car_id} -- fetch a car
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import CarCreateRequest, CarResponse
from src.config import settings
from src.domain.errors import NotFound
from src.infrastructure.models import CarModel
from src.infrastructure.repositories import CarRepository, UserRepository

router = APIRouter(prefix="/cars", tags=["cars"])


@router.post("", status_code=201, response_model=CarResponse, summary="Register a car")
@limiter.limit(settings.rate_limit)
async def create_car(
    request: Request,
    body: CarCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    if not await UserRepository(db).get_by_id(body.owner_id):
        raise NotFound(f"User {body.owner_id} not found")
    return await CarRepository(db).create(
        CarModel(
            owner_id=body.owner_id,
            brand=body.brand,
            car_model=body.car_model,
            seats=body.seats,
        )
    )


@router.get("/{car_id}", response_model=CarResponse, summary="Get a car")
@limiter.limit(settings.rate_limit)
async def get_car(
    request: Request,
    car_id: int,
    db: AsyncSession = Depends(get_db),
):
    car = await CarRepository(db).get_by_id(car_id)
    if not car:
        raise NotFound(f"Car {car_id} not found")
    return car
