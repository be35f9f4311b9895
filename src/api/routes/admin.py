"""
Admin / observability endpoints
===============================

POST /api/v1/admin/advance-trip-statuses -- run one status tick now
GET  /api/v1/admin/health                -- simple health check
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import HealthResponse, StatusAdvanceResponse
from src.config import settings
from src.infrastructure.repositories import TripRepository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/advance-trip-statuses",
    response_model=StatusAdvanceResponse,
    summary="Advance trip statuses due by now",
    description=(
        "Same bulk update the background worker runs each tick. "
        "Safe to call at any time: already-advanced trips are left alone."
    ),
)
@limiter.limit(settings.rate_limit)
async def advance_trip_statuses(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    result = await TripRepository(db).advance_statuses_due_by(now)
    return StatusAdvanceResponse(
        at=now, started=result.started, completed=result.completed
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
