"""Service for the IPN configuration row."""
import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.models.ipn_config import IPNConfig
from rentdesk.schemas.ipn_config import IPNConfig as IPNConfigSchema
from rentdesk.schemas.ipn_config import IPNConfigSnapshot, IPNConfigUpdate

logger = structlog.get_logger(__name__)


class IPNConfigService:
    """Reads and updates webhook configuration.

    Nothing is cached: the webhook re-reads the active row on every request.
    """

    def __init__(self, db: AsyncSession):
        """Initialize config service with database session."""
        self.db = db

    async def get_active_config(self) -> IPNConfig | None:
        """
        Get the active configuration row.

        Returns:
            Active config or None if processing is disabled
        """
        result = await self.db.execute(
            select(IPNConfig)
            .where(IPNConfig.is_active.is_(True))
            .order_by(IPNConfig.updated_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_active_snapshot(self) -> IPNConfigSnapshot | None:
        """
        Get a detached copy of the active configuration.

        Returns:
            Snapshot or None if no active row exists
        """
        config = await self.get_active_config()
        if config is None:
            return None
        return IPNConfigSnapshot.model_validate(config)

    async def get_current_config(self) -> IPNConfig | None:
        """
        Get the configuration shown to administrators.

        Prefers the active row, otherwise the most recently updated one.

        Returns:
            Config or None if never configured
        """
        result = await self.db.execute(
            select(IPNConfig)
            .order_by(IPNConfig.is_active.desc(), IPNConfig.updated_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update_config(self, config_data: IPNConfigUpdate) -> IPNConfig:
        """
        Update the current configuration, creating it on first use.

        Activating a row deactivates every other row first, so at most one
        row is active.

        Args:
            config_data: Fields to change

        Returns:
            Updated config
        """
        config = await self.get_current_config()
        created = config is None
        if config is None:
            config = IPNConfig(
                is_active=False,
                retry_attempts=3,
                retry_delay_seconds=60,
                timeout_seconds=30,
                require_signature=False,
            )
            self.db.add(config)
            await self.db.flush()

        changes = config_data.model_dump(exclude_unset=True)
        activate = changes.pop("is_active", None)

        for field, value in changes.items():
            if value is None and field != "webhook_url":
                continue
            setattr(config, field, value)

        if activate is True:
            await self.db.execute(
                update(IPNConfig)
                .where(IPNConfig.id != config.id, IPNConfig.is_active.is_(True))
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            await self.db.flush()
            config.is_active = True
        elif activate is False:
            config.is_active = False

        await self.db.flush()
        await self.db.refresh(config)

        logger.info(
            "ipn_config_updated",
            config_id=str(config.id),
            created=created,
            fields=sorted(config_data.model_dump(exclude_unset=True).keys()),
            is_active=config.is_active,
        )

        return config


def to_public_schema(config: IPNConfig) -> IPNConfigSchema:
    """Render a config row without its secret."""
    return IPNConfigSchema(
        id=config.id,
        webhook_url=config.webhook_url,
        webhook_secret_configured=bool(config.webhook_secret),
        is_active=config.is_active,
        retry_attempts=config.retry_attempts,
        retry_delay_seconds=config.retry_delay_seconds,
        timeout_seconds=config.timeout_seconds,
        require_signature=config.require_signature,
        amount_update_policy=config.amount_update_policy,
        created_at=config.created_at,
        updated_at=config.updated_at,
    )
