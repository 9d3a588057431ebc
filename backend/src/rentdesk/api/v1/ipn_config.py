"""IPN configuration endpoints."""
import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.database import get_db
from rentdesk.schemas.ipn_config import IPNConfig, IPNConfigUpdate
from rentdesk.services.ipn_config_service import IPNConfigService, to_public_schema

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/ipn/config", tags=["ipn"])


@router.get("", response_model=IPNConfig)
async def get_ipn_config(
    db: AsyncSession = Depends(get_db),
) -> IPNConfig:
    """
    Get the IPN configuration.

    The shared secret is never returned; ``webhook_secret_configured``
    reports whether one is set.
    """
    config = await IPNConfigService(db).get_current_config()
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="IPN configuration not found",
        )
    return to_public_schema(config)


@router.put("", response_model=IPNConfig)
async def update_ipn_config(
    config_data: IPNConfigUpdate,
    db: AsyncSession = Depends(get_db),
) -> IPNConfig:
    """
    Create or update the IPN configuration.

    Changes apply to the next notification; nothing is cached.
    """
    config = await IPNConfigService(db).update_config(config_data)
    await db.commit()
    return to_public_schema(config)
