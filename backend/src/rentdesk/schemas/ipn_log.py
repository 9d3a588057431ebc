"""Pydantic schemas for IPNLog model."""
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from rentdesk.models.ipn_log import IPNLogStatus


class IPNLog(BaseModel):
    """Schema for returning an IPN log entry."""

    id: UUID
    transaction_ref: str
    payment_id: UUID | None
    request_payload: dict[str, Any]
    response_payload: dict[str, Any] | None
    signature: str | None
    signature_valid: bool | None
    status: IPNLogStatus
    error_message: str | None
    response_time_ms: int | None
    retry_count: int
    ip_address: str | None
    user_agent: str | None
    created_at: datetime
    processed_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class IPNLogList(BaseModel):
    """Schema for paginated IPN log list."""

    items: list[IPNLog]
    total: int
    page: int
    page_size: int
