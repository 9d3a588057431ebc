"""Daily IPN statistics rollup."""
from sqlalchemy import Column, Date, Integer, Numeric

from rentdesk.models.base import Base


class IPNStatistics(Base):
    """
    Materialized per-day counters over ``ipn_logs``.

    Written by the statistics worker only.
    """

    __tablename__ = "ipn_statistics"

    date = Column(Date, nullable=False, unique=True, index=True)
    total_received = Column(Integer, nullable=False, default=0)
    total_success = Column(Integer, nullable=False, default=0)
    total_failed = Column(Integer, nullable=False, default=0)
    total_retries = Column(Integer, nullable=False, default=0)
    avg_response_time_ms = Column(Numeric(10, 2), nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<IPNStatistics(date={self.date}, received={self.total_received}, failed={self.total_failed})>"
