"""IPN log endpoints for monitoring and retrying notifications."""
from datetime import date, datetime
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.config import settings
from rentdesk.database import get_db
from rentdesk.exceptions import NotFoundError, RetryNotAllowed
from rentdesk.models.ipn_log import IPNLogStatus
from rentdesk.schemas.ipn_log import IPNLog, IPNLogList
from rentdesk.services.ipn_config_service import IPNConfigService
from rentdesk.services.ipn_log_service import IPNLogService, logs_to_csv
from rentdesk.services.ipn_retry_service import IPNRetryService, check_retry_eligible

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/ipn/logs", tags=["ipn"])

EXPORT_LIMIT = 10000


def _check_date_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )


@router.get("", response_model=IPNLogList)
async def list_ipn_logs(
    status_filter: Optional[IPNLogStatus] = Query(None, alias="status", description="Filter by log status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=settings.ipn_logs_max_page_size, description="Results per page"),
    start_date: Optional[date] = Query(None, description="Earliest creation day (inclusive)"),
    end_date: Optional[date] = Query(None, description="Latest creation day (inclusive)"),
    db: AsyncSession = Depends(get_db),
) -> IPNLogList:
    """
    List IPN log entries, most recent first.

    - **status**: received, processing, success, failed or retry
    - **page**: Page number for pagination
    - **page_size**: Number of results per page
    - **start_date** / **end_date**: Creation day range, both inclusive
    """
    _check_date_range(start_date, end_date)
    service = IPNLogService(db)
    entries, total = await service.list_logs(
        status=status_filter,
        page=page,
        page_size=page_size,
        start_date=start_date,
        end_date=end_date,
    )

    return IPNLogList(
        items=[IPNLog.model_validate(entry) for entry in entries],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/export")
async def export_ipn_logs(
    status_filter: Optional[IPNLogStatus] = Query(None, alias="status", description="Filter by log status"),
    start_date: Optional[date] = Query(None, description="Earliest creation day (inclusive)"),
    end_date: Optional[date] = Query(None, description="Latest creation day (inclusive)"),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download log entries as CSV."""
    _check_date_range(start_date, end_date)
    service = IPNLogService(db)
    entries, _ = await service.list_logs(
        status=status_filter,
        page=1,
        page_size=EXPORT_LIMIT,
        start_date=start_date,
        end_date=end_date,
    )

    filename = f"ipn-logs-{datetime.utcnow().strftime('%Y%m%dT%H%M%SZ')}.csv"
    return Response(
        content=logs_to_csv(entries),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{log_id}", response_model=IPNLog)
async def get_ipn_log(
    log_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> IPNLog:
    """Get one log entry with its request and response payloads."""
    entry = await IPNLogService(db).get(log_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"IPN log {log_id} not found",
        )
    return IPNLog.model_validate(entry)


@router.post("/{log_id}/retry", response_model=IPNLog)
async def retry_ipn_log(
    log_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> IPNLog:
    """
    Queue a failed notification for redelivery.

    Only entries in ``failed`` status below the configured retry limit are
    eligible. The redelivery worker picks the entry up once the configured
    delay has elapsed.
    """
    logs = IPNLogService(db)
    entry = await logs.get(log_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"IPN log {log_id} not found",
        )

    config = await IPNConfigService(db).get_active_snapshot()

    try:
        check_retry_eligible(entry, config.retry_attempts if config else None)
        updated = await IPNRetryService(db).retry(log_id)
        await db.commit()
    except NotFoundError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except RetryNotAllowed as e:
        await db.rollback()
        logger.info("ipn_retry_rejected", log_id=str(log_id), reason=e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    return IPNLog.model_validate(updated)
