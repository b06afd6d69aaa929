"""Background closing of polls whose voting window has passed."""

from datetime import UTC, datetime
from typing import Any

import asyncpg
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from civicpoll.core.config import Settings
from civicpoll.core.database import get_db_connection, records_to_list
from civicpoll.core.logging_config import get_logger
from civicpoll.core.rate_limiting import prune_all_limiters

logger = get_logger(__name__)

SWEEP_JOB_ID = "close_expired_polls"
PRUNE_JOB_ID = "prune_rate_limiters"


async def close_expired_polls(
    conn: asyncpg.Connection, now: datetime | None = None
) -> list[dict[str, Any]]:
    """
    Close every active poll whose end date is before `now`.

    A single UPDATE, so running it twice closes nothing the second time.
    """
    now = now or datetime.now(UTC)
    rows = await conn.fetch(
        """
        UPDATE polls
        SET status = 'closed', updated_at = $1
        WHERE status = 'active' AND end_date < $1
        RETURNING id, title, end_date
        """,
        now,
    )
    return records_to_list(rows)


async def run_expiry_sweep() -> list[dict[str, Any]]:
    """One scheduler cycle. Failures are logged and wait for the next cycle."""
    try:
        async with get_db_connection() as conn:
            closed = await close_expired_polls(conn)
    except Exception:
        logger.exception("Poll expiry sweep failed")
        return []

    for poll in closed:
        logger.info(f"Closed expired poll {poll['id']} ({poll['title']}), ended {poll['end_date']}")
    if closed:
        logger.info(f"Poll expiry sweep closed {len(closed)} poll(s)")
    return closed


def build_poll_scheduler(settings: Settings) -> AsyncIOScheduler:
    """Create the scheduler with the expiry sweep and limiter pruning registered."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_expiry_sweep,
        trigger=IntervalTrigger(minutes=settings.POLL_SWEEP_INTERVAL_MINUTES, timezone="UTC"),
        id=SWEEP_JOB_ID,
        replace_existing=True,
        next_run_time=datetime.now(UTC),
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        prune_all_limiters,
        trigger=IntervalTrigger(hours=1, timezone="UTC"),
        id=PRUNE_JOB_ID,
        replace_existing=True,
        coalesce=True,
    )
    return scheduler


def start_poll_scheduler(settings: Settings) -> AsyncIOScheduler:
    scheduler = build_poll_scheduler(settings)
    scheduler.start()
    logger.info(
        f"Poll expiry sweep scheduled every {settings.POLL_SWEEP_INTERVAL_MINUTES} minutes"
    )
    return scheduler
