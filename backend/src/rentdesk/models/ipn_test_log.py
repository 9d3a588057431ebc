"""Execution history of IPN test scenarios."""
from sqlalchemy import Boolean, Column, String, Text

from rentdesk.models.base import Base, JSONType


class IPNTestLog(Base):
    """Outcome of one test scenario run through the live pipeline."""

    __tablename__ = "ipn_test_logs"

    test_type = Column(String(100), nullable=False, index=True)
    test_payload = Column(JSONType, nullable=False)
    expected_result = Column(String(20), nullable=True)
    actual_result = Column(String(20), nullable=True)
    passed = Column(Boolean, nullable=True)
    error_message = Column(Text, nullable=True)
