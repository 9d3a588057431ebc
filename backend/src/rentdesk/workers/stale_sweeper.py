"""Sweeper for log entries stuck in ``received`` or ``processing``.

A crash after the audit insert, or between the processing transition and the
terminal write, leaves an entry in flight forever; this job marks such
entries failed so they become eligible for retry.
"""
from datetime import timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.config import settings
from rentdesk.database import get_async_session
from rentdesk.metrics import ipn_stale_entries_swept_total
from rentdesk.services.ipn_log_service import IPNLogService

logger = structlog.get_logger(__name__)


async def sweep_stale_entries(db: AsyncSession, timeout_seconds: int | None = None) -> int:
    """
    Mark stale in-flight entries as failed and commit.

    Args:
        db: Database session
        timeout_seconds: Age threshold (defaults to settings)

    Returns:
        Number of entries swept
    """
    timeout = timeout_seconds or settings.ipn_processing_timeout_seconds
    swept = await IPNLogService(db).sweep_stale_processing(older_than=timedelta(seconds=timeout))
    await db.commit()

    if swept:
        ipn_stale_entries_swept_total.inc(swept)
    return swept


async def sweep_stale_processing(ctx: dict) -> dict[str, int]:
    """ARQ task: sweep stale processing entries."""
    async with get_async_session() as db:
        swept = await sweep_stale_entries(db)
    return {"swept": swept}
