import argparse
import asyncio
from datetime import date
import logging
import time

from core.errors import DayNotCachedError, FutureDateError
from services.config import load_config
from services.logging import setup_logging
from services.database import Database
from services.scheduler import run_daily
from workflows.orchestrator import build_orchestrator
from delivery.file_delivery import FileDelivery
from delivery.base import DeliveryChannel

logger = logging.getLogger(__name__)


async def run_once(orchestrator, deliveries: list[DeliveryChannel], day: str | None = None) -> None:
    start_time = time.perf_counter()
    logger.info(f"Starting daily briefs run for {day or 'today'}")

    try:
        if day is None:
            payload = await orchestrator.get_or_build_today()
        else:
            payload = await orchestrator.get_or_build(day)
    except (FutureDateError, DayNotCachedError) as e:
        logger.error(f"Nothing to deliver: {e}")
        return

    for key, brief in payload.briefs_by_category.items():
        logger.info(f"[{key}] status={brief.status}, sources={len(brief.top_sources)}")

    for delivery in deliveries:
        try:
            await delivery.deliver(payload)
            logger.info(f"Delivered {payload.date} briefs via {delivery.name}")
        except Exception as e:
            logger.error(f"Delivery failed: date={payload.date}, channel={delivery.name}, error={e}")

    end_time = time.perf_counter()
    logger.info(f"Total time: {end_time - start_time}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Build the daily category briefs")
    parser.add_argument("--date", help="Export the cached briefs of a past YYYY-MM-DD instead of today")
    parser.add_argument("--schedule", action="store_true",
                        help="Keep running and build once a day at SCHEDULE_HOUR")
    parser.add_argument("--output", help="Directory for the JSON/Markdown export (default: OUTPUT_DIR)")
    args = parser.parse_args()

    setup_logging()

    day = None
    if args.date:
        try:
            day = date.fromisoformat(args.date).isoformat()
        except ValueError:
            parser.error(f"invalid --date '{args.date}', expected YYYY-MM-DD")

    config = load_config()
    db = Database(config.DATABASE_PATH)
    await db.init_tables()

    orchestrator = build_orchestrator(config, db)
    deliveries: list[DeliveryChannel] = [FileDelivery(args.output or config.OUTPUT_DIR)]

    if args.schedule:
        logger.info(f"Scheduling daily run at {config.SCHEDULE_HOUR:02d}:00")
        await run_daily(lambda: run_once(orchestrator, deliveries), hour=config.SCHEDULE_HOUR)
    else:
        await run_once(orchestrator, deliveries, day)


if __name__ == "__main__":
    asyncio.run(main())
