"""SQLAlchemy ORM models for the IPN pipeline."""
# Import all models here to ensure they are registered with Alembic

from rentdesk.models.base import Base
from rentdesk.models.payment import Payment, PaymentStatus
from rentdesk.models.ipn_config import AmountUpdatePolicy, IPNConfig
from rentdesk.models.ipn_log import IPNLog, IPNLogStatus
from rentdesk.models.ipn_statistics import IPNStatistics
from rentdesk.models.ipn_test_log import IPNTestLog

__all__ = [
    "Base",
    "Payment",
    "PaymentStatus",
    "AmountUpdatePolicy",
    "IPNConfig",
    "IPNLog",
    "IPNLogStatus",
    "IPNStatistics",
    "IPNTestLog",
]
