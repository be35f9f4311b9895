"""
Background Trip Status Worker
=============================

Runs every ``TRIP_STATUS_INTERVAL_SECONDS`` (default 30 s) and moves
trips along ``scheduled -> in_progress -> completed`` once their time
window has elapsed.  No user request is involved.

Concurrency safety
------------------
* Each tick is one call to ``TripRepository.advance_statuses_due_by``:
  two set-based conditional updates in a single transaction, never a
  per-row read-modify-write loop.  Booking requests touching the same
  rows only ever race against that atomic update.
* An optional **Redis distributed lock** keeps several API processes from
  running the same tick twice.  The update is idempotent, so when Redis
  is down the tick simply runs without the lock.

Failure handling
----------------
A failed tick is logged with its timestamp and the error, then retried
implicitly on the next tick.  Nothing propagates to the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.domain.errors import StorageUnavailable
from src.infrastructure.database import async_session_factory
from src.infrastructure.locks import DistributedLock
from src.infrastructure.redis_client import get_redis
from src.infrastructure.repositories import StatusAdvance, TripRepository, as_utc

logger = logging.getLogger(__name__)

LOCK_KEY = "trip_status_worker"

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_status_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Trip status worker started (interval=%ss)",
        settings.trip_status_interval_seconds,
    )


async def stop_status_loop() -> None:
    global _task, _stop_event
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    _task = None
    _stop_event = None
    logger.info("Trip status worker stopped")


async def run_status_cycle(
    now: datetime | None = None,
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    lock: DistributedLock | None = None,
) -> StatusAdvance | None:
    """
    Execute one tick.

    Returns the row counts, or ``None`` when the tick was skipped (lock
    held elsewhere) or failed.
    """
    now = as_utc(now) if now else datetime.now(timezone.utc)

    held = False
    if lock is not None:
        try:
            held = await lock.acquire()
        except RedisError as exc:
            logger.warning("Worker lock unavailable (%s); advancing without it", exc)
        else:
            if not held:
                logger.debug("Lock held by another worker - skipping tick")
                return None

    try:
        return await _advance(now, session_factory)
    except StorageUnavailable as exc:
        logger.error(
            "Trip status tick at %s failed: %s", now.isoformat(), exc.message
        )
        return None
    finally:
        if held:
            try:
                await lock.release()
            except RedisError as exc:
                logger.warning("Could not release worker lock: %s", exc)


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a tick then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            lock = None
            if settings.trip_status_lock_enabled:
                lock = DistributedLock(
                    await get_redis(),
                    LOCK_KEY,
                    ttl_seconds=settings.trip_status_lock_ttl_seconds,
                )
            await run_status_cycle(lock=lock)
        except Exception:
            logger.exception("Unhandled error in trip status tick")
        # Wait for the interval or until stop is signalled
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.trip_status_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next tick


async def _advance(
    now: datetime, session_factory: async_sessionmaker[AsyncSession]
) -> StatusAdvance:
    try:
        async with session_factory() as session:
            result = await TripRepository(session).advance_statuses_due_by(now)
            await session.commit()
    except (SQLAlchemyError, OSError) as exc:
        raise StorageUnavailable(str(exc)) from exc

    if result.total:
        logger.info(
            "Trip status tick at %s: %d started, %d completed",
            now.isoformat(),
            result.started,
            result.completed,
        )
    return result
