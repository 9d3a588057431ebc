"""IPN pipeline orchestrator.

Coordinates one notification attempt:

    RECEIVED -> VERIFYING -> (REJECTED | RECONCILING) -> (SUCCEEDED | FAILED)

The log row is committed before verification, so no notification is
processed without a durable trace. Domain errors are translated into the
log row's terminal fields and an HTTP status; nothing escapes ``process``.
"""
import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.exceptions import (
    ConfigurationError,
    LogWriteError,
    MalformedRequest,
    NotFoundError,
    ReconciliationError,
    SignatureInvalid,
)
from rentdesk.metrics import (
    ipn_log_write_failures_total,
    ipn_notifications_total,
    ipn_processing_duration_seconds,
    ipn_signature_rejections_total,
)
from rentdesk.models.ipn_log import IPNLogStatus
from rentdesk.schemas.ipn_config import IPNConfigSnapshot
from rentdesk.schemas.ipn_notification import IPNNotification, IPNWebhookResponse
from rentdesk.services.ipn_config_service import IPNConfigService
from rentdesk.services.ipn_log_service import IPNLogService
from rentdesk.services.reconciliation_service import ReconciliationService
from rentdesk.services.signature import verify_signature

logger = structlog.get_logger(__name__)

LOG_WRITE_FAILED_MESSAGE = "Failed to record notification"


@dataclass
class IPNResult:
    """HTTP outcome of a pipeline run."""

    status_code: int
    body: dict[str, Any]
    log_id: UUID | None = None
    payment_id: UUID | None = None
    outcome: str = field(default="failed")


def parse_notification(raw_body: bytes) -> tuple[IPNNotification, dict[str, Any], str]:
    """
    Decode a request body.

    Args:
        raw_body: Body bytes as received

    Returns:
        Tuple of (notification, decoded payload, body text)

    Raises:
        MalformedRequest: If the body is not a UTF-8 JSON object
    """
    try:
        text = raw_body.decode("utf-8")
        payload = json.loads(text)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedRequest() from e

    if not isinstance(payload, dict):
        raise MalformedRequest()

    return IPNNotification.model_validate(payload), payload, text


def _error_body(message: str) -> dict[str, Any]:
    return IPNWebhookResponse(success=False, message=message).model_dump(by_alias=True, exclude_none=True)


class IPNProcessor:
    """Runs notifications through verify → reconcile → finalize.

    Owns the transaction: services flush, the processor commits or rolls
    back at each state transition.
    """

    def __init__(self, db: AsyncSession):
        """Initialize processor with database session."""
        self.db = db
        self.logs = IPNLogService(db)
        self.configs = IPNConfigService(db)
        self.reconciler = ReconciliationService(db)

    async def process(
        self,
        raw_body: bytes,
        signature: str | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> IPNResult:
        """
        Handle one inbound notification.

        Args:
            raw_body: Body bytes exactly as received
            signature: Signature header value, if present
            ip_address: Caller IP
            user_agent: Caller user agent

        Returns:
            Status code and response body for the gateway
        """
        started = time.perf_counter()
        signature = signature or None
        log_id: UUID | None = None

        try:
            try:
                notification, payload, body_text = parse_notification(raw_body)
            except MalformedRequest as e:
                logger.warning("ipn_malformed_request", ip_address=ip_address, body_size=len(raw_body))
                return self._result(e.status_code, _error_body(e.message), "malformed", started)

            config = await self.configs.get_active_snapshot()
            if config is None:
                error = ConfigurationError()
                logger.warning("ipn_not_configured", transaction_ref=notification.log_reference)
                return self._result(error.status_code, _error_body(error.message), "not_configured", started)

            try:
                log_id = await self.logs.create(
                    transaction_ref=notification.log_reference,
                    request_payload=payload,
                    raw_body=body_text,
                    signature=signature,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
                await self.db.commit()
            except (LogWriteError, SQLAlchemyError) as e:
                await self.db.rollback()
                ipn_log_write_failures_total.labels(stage="create").inc()
                logger.error(
                    "ipn_log_write_failed",
                    transaction_ref=notification.log_reference,
                    error=str(e),
                )
                return self._result(500, _error_body(LOG_WRITE_FAILED_MESSAGE), "log_write_failed", started)

            logger.info(
                "ipn_received",
                log_id=str(log_id),
                transaction_ref=notification.log_reference,
                ip_address=ip_address,
                signed=signature is not None,
            )

            return await self._run(log_id, notification, raw_body, signature, config, started)

        except Exception as e:
            logger.exception("ipn_processing_error", log_id=str(log_id) if log_id else None, error=str(e))
            await self._safe_rollback()
            message = str(e) or "Internal server error"
            if log_id is not None:
                await self._finalize(log_id, started, status=IPNLogStatus.FAILED, error_message=message)
            return self._result(500, _error_body(message), "failed", started, log_id=log_id)

    async def replay(self, log_id: UUID) -> IPNResult:
        """
        Re-drive a retry-queued entry through the pipeline.

        Uses the stored raw body and signature, re-verified against the
        current secret, and updates the same log entry.

        Args:
            log_id: Entry in ``retry`` status

        Returns:
            Pipeline outcome

        Raises:
            NotFoundError: If the entry does not exist
            ConfigurationError: If no active configuration exists
        """
        started = time.perf_counter()

        entry = await self.logs.get(log_id)
        if entry is None:
            raise NotFoundError(f"IPN log {log_id} not found")

        config = await self.configs.get_active_snapshot()
        if config is None:
            raise ConfigurationError()

        raw_body = entry.raw_body.encode("utf-8")
        signature = entry.signature
        notification = IPNNotification.model_validate(entry.request_payload)

        logger.info("ipn_replay_started", log_id=str(log_id), retry_count=entry.retry_count)

        try:
            return await self._run(log_id, notification, raw_body, signature, config, started)
        except Exception as e:
            logger.exception("ipn_replay_error", log_id=str(log_id), error=str(e))
            await self._safe_rollback()
            message = str(e) or "Internal server error"
            await self._finalize(log_id, started, status=IPNLogStatus.FAILED, error_message=message)
            return self._result(500, _error_body(message), "failed", started, log_id=log_id)

    async def _run(
        self,
        log_id: UUID,
        notification: IPNNotification,
        raw_body: bytes,
        signature: str | None,
        config: IPNConfigSnapshot,
        started: float,
    ) -> IPNResult:
        """Verification and reconciliation for an already logged attempt."""
        # VERIFYING
        signature_valid: bool | None = None
        try:
            if signature is not None:
                signature_valid = verify_signature(raw_body, signature, config.webhook_secret)
                if not signature_valid:
                    raise SignatureInvalid()
            elif config.require_signature:
                raise SignatureInvalid("Missing signature")
        except SignatureInvalid as e:
            reason = "invalid" if signature is not None else "missing"
            ipn_signature_rejections_total.labels(reason=reason).inc()
            logger.warning("ipn_signature_rejected", log_id=str(log_id), reason=reason)
            await self._finalize(
                log_id,
                started,
                status=IPNLogStatus.FAILED,
                error_message=e.message,
                signature_valid=signature_valid,
            )
            return self._result(e.status_code, _error_body(e.message), "rejected", started, log_id=log_id)

        # RECONCILING
        await self._transition(log_id, status=IPNLogStatus.PROCESSING, signature_valid=signature_valid)

        try:
            outcome = await self.reconciler.reconcile(notification, amount_policy=config.amount_update_policy)
            response = IPNWebhookResponse(
                success=True,
                message="Payment processed successfully" if outcome.created else "Payment updated successfully",
                payment_id=str(outcome.payment_id),
            )
            await self.db.commit()
        except ReconciliationError as e:
            await self._safe_rollback()
            logger.warning("ipn_reconciliation_failed", log_id=str(log_id), error=e.message)
            await self._finalize(log_id, started, status=IPNLogStatus.FAILED, error_message=e.message)
            return self._result(500, _error_body(e.message), "failed", started, log_id=log_id)
        except SQLAlchemyError as e:
            await self._safe_rollback()
            message = "Failed to persist payment record"
            logger.error("ipn_commit_failed", log_id=str(log_id), error=str(e))
            await self._finalize(log_id, started, status=IPNLogStatus.FAILED, error_message=message)
            return self._result(500, _error_body(message), "failed", started, log_id=log_id)

        # The payment is committed; the success entry is written best-effort
        await self._finalize(
            log_id,
            started,
            payment_id=outcome.payment_id,
            status=IPNLogStatus.SUCCESS,
            response_payload={"success": True, "paymentId": str(outcome.payment_id)},
            error_message=None,
        )

        logger.info(
            "ipn_processed",
            log_id=str(log_id),
            payment_id=str(outcome.payment_id),
            created=outcome.created,
            payment_status=outcome.status.value,
        )

        return self._result(
            200,
            response.model_dump(by_alias=True, exclude_none=True),
            "success",
            started,
            log_id=log_id,
            payment_id=outcome.payment_id,
        )

    async def _transition(self, log_id: UUID, **patch: Any) -> None:
        """Best-effort non-terminal state change."""
        try:
            await self.logs.update(log_id, **patch)
            await self.db.commit()
        except (LogWriteError, SQLAlchemyError) as e:
            await self._safe_rollback()
            ipn_log_write_failures_total.labels(stage="transition").inc()
            logger.error("ipn_log_transition_failed", log_id=str(log_id), patch=sorted(patch), error=str(e))

    async def _finalize(self, log_id: UUID, started: float, **patch: Any) -> None:
        """Write a terminal state; failures are reported, never raised."""
        patch.setdefault("response_time_ms", _elapsed_ms(started))
        patch.setdefault("processed_at", datetime.utcnow())
        try:
            await self.logs.update(log_id, **patch)
            await self.db.commit()
        except (LogWriteError, SQLAlchemyError) as e:
            await self._safe_rollback()
            ipn_log_write_failures_total.labels(stage="finalize").inc()
            logger.error("ipn_log_finalize_failed", log_id=str(log_id), error=str(e))

    async def _safe_rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            logger.error("ipn_rollback_failed", error=str(e))

    @staticmethod
    def _result(
        status_code: int,
        body: dict[str, Any],
        outcome: str,
        started: float,
        log_id: UUID | None = None,
        payment_id: UUID | None = None,
    ) -> IPNResult:
        ipn_notifications_total.labels(outcome=outcome).inc()
        ipn_processing_duration_seconds.labels(outcome=outcome).observe(time.perf_counter() - started)
        return IPNResult(
            status_code=status_code,
            body=body,
            log_id=log_id,
            payment_id=payment_id,
            outcome=outcome,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
