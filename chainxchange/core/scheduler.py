import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from chainxchange.core.config import settings
from chainxchange.core.database import SessionLocal
from chainxchange.services.market_data import MarketDataService
from chainxchange.services.trading import TradingService

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def record_daily_net_worth(market_data: MarketDataService):
    db = SessionLocal()
    try:
        snapshot_count = await TradingService(market_data).snapshot_net_worth(db)
        logger.info(f"Daily net-worth snapshots recorded: {snapshot_count} users")
    except Exception as e:
        db.rollback()
        logger.error(f"Error recording daily net-worth snapshots: {e}")
    finally:
        db.close()


def start_scheduler(market_data: MarketDataService):
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled by configuration")
        return

    if not scheduler.running:
        scheduler.add_job(
            record_daily_net_worth,
            'cron',
            hour=0,
            minute=0,
            args=[market_data],
            id='daily_net_worth_snapshots',
            name='Record Daily Net Worth Snapshots',
            replace_existing=True
        )
        scheduler.start()
        logger.info("Scheduler started with daily net-worth snapshot job")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
