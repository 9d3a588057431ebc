"""Pydantic schemas for payment entities."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from rentdesk.models.payment import PaymentStatus


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reference_number: str
    amount: Decimal
    currency: Optional[str] = None
    payment_date: datetime
    payment_method: str
    status: PaymentStatus
    created_at: datetime
    updated_at: datetime


class PaymentList(BaseModel):
    """Schema for paginated list of payments."""

    items: List[PaymentResponse]
    total: int
    page: int
    page_size: int
