import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def next_run_time(hour: int = 6, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now()
    run = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if run <= now:
        run += timedelta(days=1)
    return run


async def run_daily(job: Callable[[], Awaitable[None]], hour: int = 6) -> None:
    """Run job once a day at the given local hour, forever."""
    while True:
        run_at = next_run_time(hour)
        delay = (run_at - datetime.now()).total_seconds()
        logger.info(f"Next daily run scheduled at {run_at.isoformat()}")
        await asyncio.sleep(max(delay, 0))

        try:
            await job()
        except Exception as e:
            logger.exception(f"Scheduled run failed: {e}")
