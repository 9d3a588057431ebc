"""IPN log model: audit ledger of every inbound notification attempt."""
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer, String, Text, Uuid

from rentdesk.models.base import Base, JSONType, enum_values


class IPNLogStatus(enum.Enum):
    """Processing status of a notification attempt."""

    RECEIVED = "received"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    RETRY = "retry"


TERMINAL_STATUSES = (IPNLogStatus.SUCCESS, IPNLogStatus.FAILED)


class IPNLog(Base):
    """
    One row per inbound (or redelivered) notification.

    Rows are created before any verification or reconciliation and are
    never deleted.
    """

    __tablename__ = "ipn_logs"

    transaction_ref = Column(String(255), nullable=False, index=True)
    payment_id = Column(Uuid(as_uuid=True), ForeignKey("payments.id"), nullable=True, index=True)
    request_payload = Column(JSONType, nullable=False)
    raw_body = Column(Text, nullable=False)  # exact bytes the sender signed
    response_payload = Column(JSONType, nullable=True)
    signature = Column(String(512), nullable=True)
    signature_valid = Column(Boolean, nullable=True)
    status = Column(
        SQLEnum(IPNLogStatus, name="ipnlogstatus", values_callable=enum_values),
        nullable=False,
        default=IPNLogStatus.RECEIVED,
        index=True,
    )
    error_message = Column(Text, nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    ip_address = Column(String(255), nullable=True)
    user_agent = Column(String(512), nullable=True)
    processed_at = Column(DateTime, nullable=True)

    # Redelivery and sweeper scans filter by status and age
    __table_args__ = (Index("ix_ipn_logs_status_updated_at", "status", "updated_at"),)

    def __repr__(self) -> str:
        """String representation."""
        return f"<IPNLog(id={self.id}, ref={self.transaction_ref}, status={self.status.value}, retries={self.retry_count})>"
