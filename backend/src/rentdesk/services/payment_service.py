"""Read access to reconciled payments."""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.models.payment import Payment, PaymentStatus


class PaymentService:
    """Service for payment lookups."""

    def __init__(self, db: AsyncSession):
        """Initialize payment service."""
        self.db = db

    async def list_payments(
        self,
        reference: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
        page: int = 1,
        page_size: int = 100,
    ) -> tuple[List[Payment], int]:
        """
        List payments with optional filters.

        Args:
            reference: Filter by reference number
            status: Filter by payment status
            page: Page number
            page_size: Results per page

        Returns:
            Tuple of (payments, total count)
        """
        conditions = []
        if reference:
            conditions.append(Payment.reference_number == reference)
        if status:
            conditions.append(Payment.status == status)

        total = (
            await self.db.execute(select(func.count()).select_from(Payment).where(*conditions))
        ).scalar_one()

        query = select(Payment).where(*conditions).execution_options(populate_existing=True)
        query = query.order_by(Payment.created_at.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        """
        Get payment by ID.

        Args:
            payment_id: Payment UUID

        Returns:
            Payment if found, None otherwise
        """
        result = await self.db.execute(
            select(Payment).where(Payment.id == payment_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
