"""Payment endpoints for reconciled payment records."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.database import get_db
from rentdesk.models.payment import PaymentStatus
from rentdesk.schemas.payment import PaymentList, PaymentResponse
from rentdesk.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=PaymentList)
async def list_payments(
    reference: Optional[str] = Query(None, description="Filter by transaction reference"),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status", description="Filter by payment status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(100, ge=1, le=1000, description="Results per page"),
    db: AsyncSession = Depends(get_db),
) -> PaymentList:
    """
    List payments with optional filters.

    - **reference**: Filter by gateway transaction reference
    - **status**: Filter by payment status (paid, partial, failed)
    - **page**: Page number for pagination
    - **page_size**: Number of results per page
    """
    payments, total = await PaymentService(db).list_payments(
        reference=reference,
        status=status_filter,
        page=page,
        page_size=page_size,
    )

    return PaymentList(
        items=[PaymentResponse.model_validate(p) for p in payments],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> PaymentResponse:
    """Get payment details by ID."""
    payment = await PaymentService(db).get_payment(payment_id)

    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payment {payment_id} not found",
        )

    return PaymentResponse.model_validate(payment)
