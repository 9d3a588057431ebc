"""Daily IPN statistics rollup worker.

Today's row is refreshed hourly; yesterday's row is finalized shortly
after midnight UTC.
"""
from datetime import date, datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.database import get_async_session
from rentdesk.services.ipn_statistics_service import IPNStatisticsService

logger = structlog.get_logger(__name__)


async def rollup_statistics(db: AsyncSession, day: date) -> dict:
    """
    Recompute and store statistics for one day.

    Args:
        db: Database session
        day: UTC calendar day

    Returns:
        Dict with the stored counters
    """
    stats = await IPNStatisticsService(db).rollup_day(day)
    await db.commit()

    return {
        "date": day.isoformat(),
        "total_received": stats.total_received,
        "total_success": stats.total_success,
        "total_failed": stats.total_failed,
        "total_retries": stats.total_retries,
    }


async def rollup_today(ctx: dict) -> dict:
    """ARQ task: refresh today's statistics."""
    async with get_async_session() as db:
        return await rollup_statistics(db, datetime.utcnow().date())


async def rollup_yesterday(ctx: dict) -> dict:
    """ARQ task: finalize yesterday's statistics."""
    yesterday = datetime.utcnow().date() - timedelta(days=1)
    logger.info("ipn_statistics_finalizing", date=yesterday.isoformat())
    async with get_async_session() as db:
        return await rollup_statistics(db, yesterday)
