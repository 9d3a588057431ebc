"""IPN statistics endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.database import get_db
from rentdesk.schemas.ipn_statistics import IPNStatistics, IPNStatisticsList
from rentdesk.services.ipn_statistics_service import IPNStatisticsService

router = APIRouter(prefix="/ipn/statistics", tags=["ipn"])


@router.get("", response_model=IPNStatisticsList)
async def get_ipn_statistics(
    days: int = Query(7, ge=1, le=366, description="Number of days to return"),
    db: AsyncSession = Depends(get_db),
) -> IPNStatisticsList:
    """Get daily IPN rollups, most recent first."""
    rows = await IPNStatisticsService(db).list_recent(days=days)
    return IPNStatisticsList(items=[IPNStatistics.model_validate(row) for row in rows], days=days)
