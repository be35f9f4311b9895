"""
FastAPI application factory.

* Registers routes for users, cars, trips, bookings, reviews and admin.
* Starts / stops the background trip status worker via lifespan events.
* Maps domain errors (and lost database connections) to JSON responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import OperationalError

from src.api.middleware import limiter
from src.api.routes import admin, bookings, cars, reviews, trips, users
from src.config import settings
from src.domain.errors import DomainError, StorageUnavailable
from src.workers import trip_status as _trip_status

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the trip status worker on startup; stop on shutdown."""
    await _trip_status.start_status_loop()
    yield
    await _trip_status.stop_status_loop()


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


async def storage_error_handler(
    request: Request, exc: OperationalError
) -> JSONResponse:
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    return await domain_error_handler(
        request, StorageUnavailable("Storage is temporarily unavailable")
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Sharing Booking API",
        description=(
            "Drivers publish trips, passengers book seats and review "
            "completed trips.  Trip statuses advance in the background; "
            "seat inventory stays consistent under concurrent bookings."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Error mapping
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(OperationalError, storage_error_handler)

    # Routers
    for module in (users, cars, trips, bookings, reviews, admin):
        app.include_router(module.router, prefix="/api/v1")

    return app
