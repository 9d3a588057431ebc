"""Daily IPN statistics rollup."""
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import structlog
from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.models.ipn_log import IPNLog, IPNLogStatus
from rentdesk.models.ipn_statistics import IPNStatistics

logger = structlog.get_logger(__name__)


class IPNStatisticsService:
    """Materializes and reads per-day counters over the IPN log."""

    def __init__(self, db: AsyncSession):
        """Initialize statistics service with database session."""
        self.db = db

    async def rollup_day(self, day: date) -> IPNStatistics:
        """
        Recompute the rollup for one day and upsert it.

        Args:
            day: Calendar day (UTC) of ``created_at``

        Returns:
            Stored statistics row
        """
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)

        result = await self.db.execute(
            select(
                func.count(IPNLog.id),
                func.sum(case((IPNLog.status == IPNLogStatus.SUCCESS, 1), else_=0)),
                func.sum(case((IPNLog.status == IPNLogStatus.FAILED, 1), else_=0)),
                func.sum(IPNLog.retry_count),
                func.avg(IPNLog.response_time_ms),
            ).where(and_(IPNLog.created_at >= start, IPNLog.created_at < end))
        )
        total, success, failed, retries, avg_ms = result.one()

        existing = await self.db.execute(select(IPNStatistics).where(IPNStatistics.date == day))
        stats = existing.scalar_one_or_none()
        if stats is None:
            stats = IPNStatistics(date=day)
            self.db.add(stats)

        stats.total_received = int(total or 0)
        stats.total_success = int(success or 0)
        stats.total_failed = int(failed or 0)
        stats.total_retries = int(retries or 0)
        stats.avg_response_time_ms = (
            Decimal(str(avg_ms)).quantize(Decimal("0.01")) if avg_ms is not None else None
        )

        await self.db.flush()

        logger.info(
            "ipn_statistics_rolled_up",
            date=day.isoformat(),
            total_received=stats.total_received,
            total_success=stats.total_success,
            total_failed=stats.total_failed,
        )

        return stats

    async def list_recent(self, days: int = 7, today: date | None = None) -> list[IPNStatistics]:
        """
        Get rollups for the last ``days`` calendar days, today included.

        Days without traffic have no row, so fewer rows may come back.

        Args:
            days: Window size in calendar days
            today: Last day of the window (defaults to the current UTC day)

        Returns:
            Rows, newest first
        """
        today = today or datetime.utcnow().date()
        first_day = today - timedelta(days=days - 1)
        result = await self.db.execute(
            select(IPNStatistics)
            .where(and_(IPNStatistics.date >= first_day, IPNStatistics.date <= today))
            .order_by(IPNStatistics.date.desc())
        )
        return list(result.scalars().all())
