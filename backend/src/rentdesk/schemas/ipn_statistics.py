"""Pydantic schemas for IPN statistics."""
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class IPNStatistics(BaseModel):
    """Daily rollup."""

    model_config = ConfigDict(from_attributes=True)

    date: date
    total_received: int
    total_success: int
    total_failed: int
    total_retries: int
    avg_response_time_ms: Decimal | None


class IPNStatisticsList(BaseModel):
    """Most recent days first."""

    items: list[IPNStatistics]
    days: int
