"""Payment reconciliation: map a notification onto a payment record."""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.config import settings
from rentdesk.exceptions import ReconciliationError
from rentdesk.metrics import payments_reconciled_total
from rentdesk.models.ipn_config import AmountUpdatePolicy
from rentdesk.models.payment import Payment, PaymentStatus
from rentdesk.schemas.ipn_notification import GatewayStatus, IPNNotification

logger = structlog.get_logger(__name__)

STATUS_MAPPING = {
    GatewayStatus.SUCCESS: PaymentStatus.PAID,
    GatewayStatus.PARTIAL: PaymentStatus.PARTIAL,
}


def map_gateway_status(gateway_status: GatewayStatus) -> PaymentStatus:
    """SUCCESS → paid, PARTIAL → partial, anything else → failed."""
    return STATUS_MAPPING.get(gateway_status, PaymentStatus.FAILED)


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Result of a successful reconciliation."""

    payment_id: UUID
    created: bool
    status: PaymentStatus


class ReconciliationService:
    """Service that creates or updates payments from notifications.

    Changes are flushed, not committed. On ``ReconciliationError`` the caller
    rolls back so nothing is partially applied.
    """

    def __init__(self, db: AsyncSession):
        """Initialize reconciliation service with database session."""
        self.db = db

    async def reconcile(
        self,
        notification: IPNNotification,
        amount_policy: AmountUpdatePolicy = AmountUpdatePolicy.REPLACE,
    ) -> ReconciliationOutcome:
        """
        Reconcile a notification against existing payments.

        Args:
            notification: Decoded notification
            amount_policy: How to treat the amount of an existing payment

        Returns:
            Payment ID and whether it was created

        Raises:
            ReconciliationError: On invalid data or persistence failure
        """
        reference = notification.reference
        if reference is None:
            raise ReconciliationError("Missing transaction reference")

        status = map_gateway_status(notification.gateway_status)
        amount = _parse_amount(notification.amount)
        payment_date = _parse_timestamp(notification.timestamp)

        try:
            payment = await self.find_by_reference(reference)

            if payment is None:
                if amount is None:
                    raise ReconciliationError("Missing amount for new payment")

                payment = Payment(
                    reference_number=reference,
                    amount=amount,
                    currency=_optional_text(notification.currency, 3),
                    payment_date=payment_date,
                    payment_method=_optional_text(notification.payment_method, 100)
                    or settings.ipn_default_payment_method,
                    status=status,
                )
                self.db.add(payment)
                created = True
            else:
                payment.status = status
                payment.payment_date = payment_date
                if amount is not None:
                    payment.amount = _apply_amount_policy(payment.amount, amount, status, amount_policy)
                created = False

            await self.db.flush()
            payment_id = payment.id

        except SQLAlchemyError as e:
            logger.error("payment_reconciliation_db_error", reference=reference, error=str(e))
            raise ReconciliationError("Failed to persist payment record") from e

        payments_reconciled_total.labels(status=status.value, created=str(created).lower()).inc()
        logger.info(
            "payment_reconciled",
            payment_id=str(payment_id),
            reference=reference,
            status=status.value,
            created=created,
        )

        return ReconciliationOutcome(payment_id=payment_id, created=created, status=status)

    async def find_by_reference(self, reference: str) -> Payment | None:
        """
        Find the payment for a reference.

        The oldest record wins when more than one shares the reference.

        Args:
            reference: Business reference number

        Returns:
            Payment or None
        """
        result = await self.db.execute(
            select(Payment)
            .where(Payment.reference_number == reference)
            .order_by(Payment.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()


def _apply_amount_policy(
    current: Decimal,
    incoming: Decimal,
    status: PaymentStatus,
    policy: AmountUpdatePolicy,
) -> Decimal:
    if policy == AmountUpdatePolicy.RETAIN:
        return current
    if policy == AmountUpdatePolicy.ACCUMULATE:
        # failed notifications carry no money
        if status == PaymentStatus.FAILED:
            return current
        return Decimal(current) + incoming
    return incoming


def _parse_amount(value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ReconciliationError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ReconciliationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite() or amount < 0:
        raise ReconciliationError(f"Invalid amount: {value!r}")
    return amount


def _parse_timestamp(value: Any) -> datetime:
    if value is None or value == "":
        return datetime.utcnow()
    if not isinstance(value, str):
        raise ReconciliationError(f"Invalid timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ReconciliationError(f"Invalid timestamp: {value!r}") from e
    if parsed.tzinfo is not None:
        # stored as naive UTC
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _optional_text(value: Any, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text[:max_length] or None
