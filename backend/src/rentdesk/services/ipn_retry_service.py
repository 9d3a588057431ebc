"""Retry coordinator: re-queue failed notifications for redelivery."""
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.exceptions import NotFoundError, RetryNotAllowed
from rentdesk.metrics import ipn_retries_requested_total
from rentdesk.models.ipn_log import IPNLog, IPNLogStatus
from rentdesk.services.ipn_log_service import IPNLogService

logger = structlog.get_logger(__name__)


class IPNRetryService:
    """Bookkeeping for retries.

    Queuing only; the redelivery worker re-drives queued entries through
    the pipeline.
    """

    def __init__(self, db: AsyncSession):
        """Initialize retry service with database session."""
        self.db = db
        self.logs = IPNLogService(db)

    async def retry(self, log_id: UUID) -> IPNLog:
        """
        Queue a log entry for redelivery.

        Increments ``retry_count`` and sets status to ``retry``.

        Args:
            log_id: Log entry UUID

        Returns:
            Updated log entry

        Raises:
            NotFoundError: If the entry does not exist
        """
        entry = await self.logs.get(log_id)
        if entry is None:
            raise NotFoundError(f"IPN log {log_id} not found")

        retry_count = entry.retry_count + 1
        await self.logs.update(log_id, status=IPNLogStatus.RETRY, retry_count=retry_count)

        ipn_retries_requested_total.inc()
        logger.info(
            "ipn_retry_queued",
            log_id=str(log_id),
            transaction_ref=entry.transaction_ref,
            retry_count=retry_count,
        )

        return await self.logs.get(log_id)


def check_retry_eligible(entry: IPNLog, max_attempts: int | None) -> None:
    """
    Enforce retry eligibility for callers such as the admin API.

    Args:
        entry: Log entry
        max_attempts: Retry limit from the active configuration, if any

    Raises:
        RetryNotAllowed: If the entry is not failed or the limit is reached
    """
    if entry.status != IPNLogStatus.FAILED:
        raise RetryNotAllowed(f"Only failed notifications can be retried (status is {entry.status.value})")
    if max_attempts is not None and entry.retry_count >= max_attempts:
        raise RetryNotAllowed(f"Retry limit of {max_attempts} reached")
