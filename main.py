import asyncio
from zoneinfo import ZoneInfo
from redis.asyncio import Redis
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from core.config import settings
from core.logger import setup_logging, logger
from services.monitoring_service import monitor_sessions

async def main():
    # Setup structured logging
    setup_logging()

    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)

    scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.TIMEZONE))

    # Session expiry monitor
    scheduler.add_job(
        monitor_sessions,
        trigger="interval",
        seconds=settings.SESSION_MONITOR_INTERVAL_SECONDS,
        args=[redis],
        id="session_monitor",
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info("Scheduler started (Session Monitor).", env=settings.ENV,
                interval=settings.SESSION_MONITOR_INTERVAL_SECONDS)

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        await redis.aclose()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Application stopped.")
