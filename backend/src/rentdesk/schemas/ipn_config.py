"""Pydantic schemas for IPNConfig model."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from rentdesk.models.ipn_config import AmountUpdatePolicy


class IPNConfigSnapshot(BaseModel):
    """
    Detached copy of the active configuration.

    The pipeline reads config once per request into this snapshot so later
    rollbacks cannot expire it mid-request.
    """

    id: UUID
    webhook_secret: str | None
    is_active: bool
    retry_attempts: int
    retry_delay_seconds: int
    timeout_seconds: int
    require_signature: bool
    amount_update_policy: AmountUpdatePolicy

    model_config = ConfigDict(from_attributes=True)


class IPNConfig(BaseModel):
    """Schema for returning configuration; the secret itself is never returned."""

    id: UUID
    webhook_url: str | None
    webhook_secret_configured: bool
    is_active: bool
    retry_attempts: int
    retry_delay_seconds: int
    timeout_seconds: int
    require_signature: bool
    amount_update_policy: AmountUpdatePolicy
    created_at: datetime
    updated_at: datetime


class IPNConfigUpdate(BaseModel):
    """Schema for updating configuration. Omitted fields are left unchanged."""

    webhook_url: str | None = Field(default=None, max_length=2048, description="Public URL of the webhook")
    webhook_secret: str | None = Field(default=None, max_length=255, description="HMAC-SHA256 shared secret")
    is_active: bool | None = Field(default=None, description="Enable or disable IPN processing")
    retry_attempts: int | None = Field(default=None, ge=0, le=20, description="Maximum retries per notification")
    retry_delay_seconds: int | None = Field(default=None, ge=0, le=86400, description="Delay before redelivery")
    timeout_seconds: int | None = Field(default=None, ge=1, le=300, description="Gateway callback timeout")
    require_signature: bool | None = Field(default=None, description="Reject notifications without a signature")
    amount_update_policy: AmountUpdatePolicy | None = Field(
        default=None, description="replace, accumulate or retain the amount of an existing payment"
    )
