"""Pydantic schemas for API request/response validation."""

from rentdesk.schemas.error import ErrorCode, ErrorDetail, ErrorResponse
from rentdesk.schemas.ipn_config import IPNConfig, IPNConfigSnapshot, IPNConfigUpdate
from rentdesk.schemas.ipn_log import IPNLog, IPNLogList
from rentdesk.schemas.ipn_notification import GatewayStatus, IPNNotification, IPNWebhookResponse
from rentdesk.schemas.ipn_statistics import IPNStatistics, IPNStatisticsList
from rentdesk.schemas.ipn_test import (
    IPNCustomTest,
    IPNTestLog,
    IPNTestLogList,
    IPNTestRunResult,
    IPNTestScenario,
)
from rentdesk.schemas.payment import PaymentList, PaymentResponse

__all__ = [
    # Error schemas
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    # Notification schemas
    "GatewayStatus",
    "IPNNotification",
    "IPNWebhookResponse",
    # Log schemas
    "IPNLog",
    "IPNLogList",
    # Config schemas
    "IPNConfig",
    "IPNConfigSnapshot",
    "IPNConfigUpdate",
    # Statistics schemas
    "IPNStatistics",
    "IPNStatisticsList",
    # Test scenario schemas
    "IPNCustomTest",
    "IPNTestLog",
    "IPNTestLogList",
    "IPNTestRunResult",
    "IPNTestScenario",
    # Payment schemas
    "PaymentList",
    "PaymentResponse",
]
