"""Predefined IPN test scenarios run through the live pipeline."""
import json
import time
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.exceptions import NotFoundError
from rentdesk.models.ipn_test_log import IPNTestLog
from rentdesk.models.payment import PaymentStatus
from rentdesk.schemas.ipn_notification import IPNNotification
from rentdesk.schemas.ipn_test import IPNTestRunResult, IPNTestScenario
from rentdesk.services.ipn_config_service import IPNConfigService
from rentdesk.services.ipn_processor import IPNProcessor
from rentdesk.services.reconciliation_service import ReconciliationService
from rentdesk.services.signature import compute_signature

logger = structlog.get_logger(__name__)

TEST_IP_ADDRESS = "127.0.0.1"
TEST_USER_AGENT = "rentdesk-ipn-tester/1.0"
DUPLICATE_REFERENCE = "TEST-DUP-12345"


def build_scenarios(now: datetime | None = None) -> list[IPNTestScenario]:
    """
    Build the predefined scenarios with fresh references.

    Args:
        now: Reference time for references and timestamps

    Returns:
        Scenarios in display order
    """
    now = now or datetime.utcnow()
    stamp = int(now.timestamp() * 1000)
    timestamp = now.isoformat() + "Z"

    return [
        IPNTestScenario(
            id="success",
            name="Successful Payment",
            description="Test a successful payment notification",
            payload={
                "transactionRef": f"TEST-{stamp}",
                "amount": 5000,
                "currency": "KES",
                "status": "SUCCESS",
                "paymentMethod": "M-PESA",
                "phoneNumber": "254712345678",
                "timestamp": timestamp,
            },
            expected_status="success",
        ),
        IPNTestScenario(
            id="failed",
            name="Failed Payment",
            description="Test a failed payment notification",
            payload={
                "transactionRef": f"TEST-FAIL-{stamp}",
                "amount": 5000,
                "currency": "KES",
                "status": "FAILED",
                "errorCode": "INSUFFICIENT_FUNDS",
                "errorMessage": "Insufficient funds in account",
                "timestamp": timestamp,
            },
            expected_status="failed",
        ),
        IPNTestScenario(
            id="partial",
            name="Partial Payment",
            description="Test a partial payment notification",
            payload={
                "transactionRef": f"TEST-PARTIAL-{stamp}",
                "amount": 3000,
                "expectedAmount": 5000,
                "currency": "KES",
                "status": "PARTIAL",
                "paymentMethod": "M-PESA",
                "phoneNumber": "254712345678",
                "timestamp": timestamp,
            },
            expected_status="success",
        ),
        IPNTestScenario(
            id="duplicate",
            name="Duplicate Transaction",
            description="Deliver the same notification twice; the existing payment is updated, not duplicated",
            payload={
                "transactionRef": DUPLICATE_REFERENCE,
                "amount": 5000,
                "currency": "KES",
                "status": "SUCCESS",
                "paymentMethod": "M-PESA",
                "phoneNumber": "254712345678",
                "timestamp": timestamp,
            },
            expected_status="success",
            deliveries=2,
        ),
    ]


class IPNTestService:
    """Runs test payloads through ``IPNProcessor`` and records the outcome."""

    def __init__(self, db: AsyncSession):
        """Initialize test service with database session."""
        self.db = db
        self.processor = IPNProcessor(db)
        self.configs = IPNConfigService(db)
        self.payments = ReconciliationService(db)

    def get_scenario(self, scenario_id: str) -> IPNTestScenario:
        """
        Get a predefined scenario.

        Raises:
            NotFoundError: If the scenario does not exist
        """
        for scenario in build_scenarios():
            if scenario.id == scenario_id:
                return scenario
        raise NotFoundError(f"Test scenario '{scenario_id}' not found")

    async def run_scenario(self, scenario: IPNTestScenario, sign: bool = True) -> IPNTestRunResult:
        """
        Deliver a scenario payload and record the result.

        The payload is serialized once; the signature is computed over those
        exact bytes with the active secret.

        Args:
            scenario: Scenario to run
            sign: Whether to sign the payload

        Returns:
            Run result with the stored test log ID
        """
        raw_body = json.dumps(scenario.payload).encode("utf-8")

        config = await self.configs.get_active_snapshot()
        signature = None
        if sign and config is not None and config.webhook_secret:
            signature = compute_signature(raw_body, config.webhook_secret)

        started = time.perf_counter()
        result = None
        for _ in range(scenario.deliveries):
            result = await self.processor.process(
                raw_body=raw_body,
                signature=signature,
                ip_address=TEST_IP_ADDRESS,
                user_agent=TEST_USER_AGENT,
            )
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        actual = await self._actual_result(result.status_code, scenario.payload)
        passed = actual == scenario.expected_status
        error_message = None if result.status_code == 200 else result.body.get("message")

        test_log = IPNTestLog(
            test_type=scenario.name,
            test_payload=scenario.payload,
            expected_result=scenario.expected_status,
            actual_result=actual,
            passed=passed,
            error_message=error_message,
        )
        self.db.add(test_log)
        await self.db.flush()
        await self.db.commit()

        logger.info(
            "ipn_test_scenario_completed",
            scenario=scenario.id,
            expected=scenario.expected_status,
            actual=actual,
            passed=passed,
            status_code=result.status_code,
        )

        return IPNTestRunResult(
            test_log_id=test_log.id,
            scenario=scenario.id,
            expected_result=scenario.expected_status,
            actual_result=actual,
            passed=passed,
            status_code=result.status_code,
            response=result.body,
            response_time_ms=elapsed_ms,
        )

    async def list_test_logs(self, page: int = 1, page_size: int = 50) -> tuple[list[IPNTestLog], int]:
        """
        List test runs, most recent first.

        Returns:
            Tuple of (test logs, total count)
        """
        total = (await self.db.execute(select(func.count()).select_from(IPNTestLog))).scalar_one()
        result = await self.db.execute(
            select(IPNTestLog)
            .order_by(IPNTestLog.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def _actual_result(self, status_code: int, payload: dict[str, Any]) -> str:
        """A run succeeds when the pipeline accepted it and the payment did not fail."""
        if status_code != 200:
            return "failed"
        reference = IPNNotification.model_validate(payload).reference
        if reference is None:
            return "failed"
        payment = await self.payments.find_by_reference(reference)
        if payment is None or payment.status == PaymentStatus.FAILED:
            return "failed"
        return "success"
