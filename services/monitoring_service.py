from redis.asyncio import Redis

from core.logger import logger
from db.session import AsyncSessionLocal
from services.session_service import SessionService

async def monitor_sessions(redis: Redis = None):
    """
    Periodic task that ends in-progress sessions whose duration has elapsed.
    Participants still answering are force-completed and the final
    leaderboard is written.
    """
    logger.debug("Starting session monitor scan...")

    async with AsyncSessionLocal() as db:
        service = SessionService(db, redis)
        try:
            closed = await service.close_expired_sessions()
        except Exception as e:
            await db.rollback()
            logger.error("Monitor: Error closing expired sessions", error=str(e))
            return 0

    if closed:
        logger.info("Monitor: Closed expired sessions", count=closed)
    logger.debug("Session monitor scan completed.")
    return closed
