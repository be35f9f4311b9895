"""
User endpoints
==============

POST /api/v1/users           -- register a user
GET  /api/v1/users/{user_id} -- fetch a user
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import UserCreateRequest, UserResponse
from src.config import settings
from src.domain.errors import NotFound
from src.infrastructure.models import UserModel
from src.infrastructure.repositories import UserRepository

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=201, response_model=UserResponse, summary="Register a user")
@limiter.limit(settings.rate_limit)
async def create_user(
    request: Request,
    body: UserCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    repo = UserRepository(db)
    if await repo.get_by_phone(body.phone):
        raise HTTPException(status_code=409, detail="Phone already registered")
    return await repo.create(
        UserModel(name=body.name, phone=body.phone, balance=body.balance)
    )


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user")
@limiter.limit(settings.rate_limit)
async def get_user(
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user
