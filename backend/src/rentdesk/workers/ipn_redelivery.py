"""IPN redelivery worker.

Re-drives notifications queued by the retry endpoint through the pipeline
once the configured delay has elapsed. Each entry is replayed from its
stored raw body and signature, and the same log entry is updated.

Usage (with ARQ):
    arq rentdesk.workers.settings.WorkerSettings
"""
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.config import settings
from rentdesk.database import get_async_session
from rentdesk.exceptions import ConfigurationError, NotFoundError
from rentdesk.metrics import ipn_redeliveries_total
from rentdesk.services.ipn_config_service import IPNConfigService
from rentdesk.services.ipn_log_service import IPNLogService
from rentdesk.services.ipn_processor import IPNProcessor

logger = structlog.get_logger(__name__)


async def redeliver_due_notifications(db: AsyncSession, batch_size: int | None = None) -> dict[str, int]:
    """
    Replay retry-queued entries whose delay has elapsed.

    Args:
        db: Database session
        batch_size: Maximum entries per run (defaults to settings)

    Returns:
        Dict with counts of replayed, succeeded and failed entries
    """
    config = await IPNConfigService(db).get_active_snapshot()
    if config is None:
        logger.info("ipn_redelivery_skipped", reason="not_configured")
        return {"replayed": 0, "succeeded": 0, "failed": 0}

    entries = await IPNLogService(db).find_due_for_redelivery(
        delay_seconds=config.retry_delay_seconds,
        limit=batch_size or settings.ipn_redelivery_batch_size,
    )
    log_ids = [entry.id for entry in entries]

    logger.info("ipn_redelivery_started", due_count=len(log_ids))

    processor = IPNProcessor(db)
    succeeded = 0
    failed = 0

    for log_id in log_ids:
        try:
            result = await processor.replay(log_id)
        except (NotFoundError, ConfigurationError) as e:
            failed += 1
            ipn_redeliveries_total.labels(outcome="skipped").inc()
            logger.warning("ipn_redelivery_entry_skipped", log_id=str(log_id), reason=e.message)
            continue

        ipn_redeliveries_total.labels(outcome=result.outcome).inc()
        if result.status_code == 200:
            succeeded += 1
        else:
            failed += 1

    logger.info(
        "ipn_redelivery_completed",
        replayed=len(log_ids),
        succeeded=succeeded,
        failed=failed,
    )

    return {"replayed": len(log_ids), "succeeded": succeeded, "failed": failed}


async def redeliver_notifications(ctx: dict) -> dict[str, int]:
    """
    ARQ task: redeliver retry-queued notifications.

    Args:
        ctx: ARQ context

    Returns:
        Dict with redelivery counts
    """
    async with get_async_session() as db:
        return await redeliver_due_notifications(db)
