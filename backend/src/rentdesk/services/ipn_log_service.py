"""Notification log store: append-and-update ledger of IPN attempts."""
import csv
import io
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable
from uuid import UUID

import structlog
from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.exceptions import LogWriteError
from rentdesk.models.ipn_log import IPNLog, IPNLogStatus

logger = structlog.get_logger(__name__)

REFERENCE_MAX_LENGTH = 255
SIGNATURE_MAX_LENGTH = 512
IP_ADDRESS_MAX_LENGTH = 255
USER_AGENT_MAX_LENGTH = 512

STALE_STATUSES = (IPNLogStatus.RECEIVED, IPNLogStatus.PROCESSING)


class IPNLogService:
    """Service for writing and reading IPN log entries.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        """Initialize log service with database session."""
        self.db = db

    async def create(
        self,
        transaction_ref: str,
        request_payload: dict[str, Any],
        raw_body: str,
        signature: str | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> UUID:
        """
        Insert a new log entry in ``received`` state.

        Caller-controlled text is clipped to its column width so an oversized
        header cannot block the audit insert.

        Args:
            transaction_ref: Correlation key from the payload ("unknown" if absent)
            request_payload: Decoded body
            raw_body: Body text exactly as received
            signature: Supplied signature header, if any
            ip_address: Caller IP
            user_agent: Caller user agent

        Returns:
            ID of the new entry

        Raises:
            LogWriteError: If the row could not be written
        """
        entry = IPNLog(
            transaction_ref=_clip(transaction_ref, REFERENCE_MAX_LENGTH),
            request_payload=request_payload,
            raw_body=raw_body,
            signature=_clip(signature, SIGNATURE_MAX_LENGTH),
            signature_valid=None,
            status=IPNLogStatus.RECEIVED,
            retry_count=0,
            ip_address=_clip(ip_address, IP_ADDRESS_MAX_LENGTH),
            user_agent=_clip(user_agent, USER_AGENT_MAX_LENGTH),
        )

        try:
            self.db.add(entry)
            await self.db.flush()
        except SQLAlchemyError as e:
            raise LogWriteError(f"Failed to create IPN log entry: {e}") from e

        logger.info(
            "ipn_log_created",
            log_id=str(entry.id),
            transaction_ref=transaction_ref,
            signed=signature is not None,
        )

        return entry.id

    async def update(self, log_id: UUID, **patch: Any) -> None:
        """
        Apply a partial update to a single entry.

        Args:
            log_id: Entry to update
            **patch: Column values to set

        Raises:
            LogWriteError: If the update could not be written
        """
        try:
            await self.db.execute(update(IPNLog).where(IPNLog.id == log_id).values(**patch))
            await self.db.flush()
        except SQLAlchemyError as e:
            raise LogWriteError(f"Failed to update IPN log entry {log_id}: {e}") from e

    async def get(self, log_id: UUID) -> IPNLog | None:
        """
        Get a log entry by ID, refreshed from the database.

        Args:
            log_id: Entry UUID

        Returns:
            Entry or None if not found
        """
        result = await self.db.execute(
            select(IPNLog).where(IPNLog.id == log_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_logs(
        self,
        status: IPNLogStatus | None = None,
        page: int = 1,
        page_size: int = 50,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[list[IPNLog], int]:
        """
        List log entries, most recent first.

        Args:
            status: Filter by status (optional)
            page: Page number (1-indexed)
            page_size: Items per page
            start_date: Earliest creation day, inclusive (optional)
            end_date: Latest creation day, inclusive (optional)

        Returns:
            Tuple of (entries, total count)
        """
        conditions = []
        if status:
            conditions.append(IPNLog.status == status)
        if start_date:
            conditions.append(IPNLog.created_at >= datetime.combine(start_date, time.min))
        if end_date:
            conditions.append(IPNLog.created_at < datetime.combine(end_date + timedelta(days=1), time.min))

        count_query = select(func.count()).select_from(IPNLog)
        if conditions:
            count_query = count_query.where(and_(*conditions))
        total = (await self.db.execute(count_query)).scalar_one()

        query = select(IPNLog).execution_options(populate_existing=True)
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(IPNLog.created_at.desc(), IPNLog.id).offset((page - 1) * page_size).limit(page_size)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def find_due_for_redelivery(
        self,
        delay_seconds: int,
        limit: int = 50,
        now: datetime | None = None,
    ) -> list[IPNLog]:
        """
        Get retry-queued entries whose redelivery delay has elapsed.

        Args:
            delay_seconds: Minimum time since the retry was requested
            limit: Maximum entries to return
            now: Reference time (defaults to utcnow)

        Returns:
            Entries in ``retry`` status, oldest request first
        """
        cutoff = (now or datetime.utcnow()) - timedelta(seconds=delay_seconds)

        result = await self.db.execute(
            select(IPNLog)
            .where(
                and_(
                    IPNLog.status == IPNLogStatus.RETRY,
                    IPNLog.updated_at <= cutoff,
                )
            )
            .order_by(IPNLog.updated_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def sweep_stale_processing(self, older_than: timedelta, now: datetime | None = None) -> int:
        """
        Mark entries stuck in ``received`` or ``processing`` as failed.

        A ``received`` entry that never advanced was abandoned between the
        audit insert and verification.

        Args:
            older_than: Age after which an in-flight entry counts as stuck
            now: Reference time (defaults to utcnow)

        Returns:
            Number of entries marked failed
        """
        now = now or datetime.utcnow()
        cutoff = now - older_than

        result = await self.db.execute(
            update(IPNLog)
            .where(
                and_(
                    IPNLog.status.in_(STALE_STATUSES),
                    IPNLog.updated_at < cutoff,
                )
            )
            .values(
                status=IPNLogStatus.FAILED,
                error_message="Processing timed out",
                processed_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()

        swept = result.rowcount or 0
        if swept:
            logger.warning("ipn_stale_processing_swept", count=swept, cutoff=cutoff.isoformat())
        return swept


def _clip(value: str | None, max_length: int) -> str | None:
    return value[:max_length] if value is not None else None


EXPORT_COLUMNS = ["ID", "Transaction Ref", "Status", "Response Time", "Created At"]


def logs_to_csv(entries: Iterable[IPNLog]) -> str:
    """
    Render log entries as CSV for download.

    Args:
        entries: Log entries in display order

    Returns:
        CSV text with a header row
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for entry in entries:
        writer.writerow(
            [
                str(entry.id),
                entry.transaction_ref,
                entry.status.value,
                entry.response_time_ms if entry.response_time_ms is not None else "N/A",
                entry.created_at.isoformat(),
            ]
        )
    return buffer.getvalue()
