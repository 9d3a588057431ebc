"""IPN configuration model."""
import enum

from sqlalchemy import Boolean, Column, Enum as SQLEnum, Index, Integer, String

from rentdesk.models.base import Base, enum_values


class AmountUpdatePolicy(enum.Enum):
    """How a notification for an existing payment treats its amount."""

    REPLACE = "replace"
    ACCUMULATE = "accumulate"
    RETAIN = "retain"


class IPNConfig(Base):
    """
    Webhook configuration.

    At most one row is active; the webhook refuses to process when none is.
    """

    __tablename__ = "ipn_config"

    webhook_url = Column(String(2048), nullable=True)
    webhook_secret = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    retry_attempts = Column(Integer, nullable=False, default=3)
    retry_delay_seconds = Column(Integer, nullable=False, default=60)
    timeout_seconds = Column(Integer, nullable=False, default=30)
    require_signature = Column(Boolean, nullable=False, default=False)
    amount_update_policy = Column(
        SQLEnum(AmountUpdatePolicy, name="amountupdatepolicy", values_callable=enum_values),
        nullable=False,
        default=AmountUpdatePolicy.REPLACE,
    )

    __table_args__ = (
        Index(
            "uq_ipn_config_single_active",
            "is_active",
            unique=True,
            postgresql_where=is_active.is_(True),
            sqlite_where=is_active.is_(True),
        ),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<IPNConfig(id={self.id}, active={self.is_active}, retry_attempts={self.retry_attempts})>"
