"""Payment model for reconciled gateway payments."""
import enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Numeric, String

from rentdesk.models.base import Base, enum_values


class PaymentStatus(enum.Enum):
    """Payment record status."""

    PAID = "paid"
    PARTIAL = "partial"
    FAILED = "failed"


class Payment(Base):
    """
    Rent payment reconciled from gateway notifications.

    Correlated with notifications through ``reference_number``. A partial
    payment and its later completion share the same reference, so the
    column is indexed but not unique.
    """

    __tablename__ = "payments"

    reference_number = Column(String(255), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=True)
    payment_date = Column(DateTime, nullable=False)
    payment_method = Column(String(100), nullable=False)
    status = Column(
        SQLEnum(PaymentStatus, name="paymentstatus", values_callable=enum_values),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Payment(id={self.id}, reference={self.reference_number}, status={self.status.value}, amount={self.amount})>"
