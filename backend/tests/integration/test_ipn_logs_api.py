"""Integration tests for IPN log endpoints and the retry coordinator."""
import csv
import io
from datetime import datetime, timedelta
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.exceptions import NotFoundError
from rentdesk.models.ipn_log import IPNLog, IPNLogStatus
from rentdesk.services.ipn_log_service import IPNLogService
from rentdesk.services.ipn_retry_service import IPNRetryService
from tests.utils.factories import NotificationFactory, encode_payload, signed_headers

WEBHOOK_URL = "/webhooks/ipn"


async def _deliver(async_client: AsyncClient, secret: str | None = None, **overrides) -> dict:
    body = encode_payload(NotificationFactory.create(overrides or None))
    headers = signed_headers(body, secret) if secret else {}
    response = await async_client.post(WEBHOOK_URL, content=body, headers=headers)
    return response.json()


async def _backdate(db_session: AsyncSession, transaction_ref: str, days: int) -> None:
    await db_session.execute(
        update(IPNLog)
        .where(IPNLog.transaction_ref == transaction_ref)
        .values(created_at=datetime.utcnow() - timedelta(days=days))
    )
    await db_session.commit()


async def _failed_log_id(async_client: AsyncClient) -> str:
    await _deliver(async_client, secret="wrong-secret")
    response = await async_client.get("/v1/ipn/logs", params={"status": "failed"})
    return response.json()["items"][0]["id"]


@pytest.mark.asyncio
async def test_list_logs_most_recent_first(async_client: AsyncClient, active_config: str) -> None:
    """Logs are paginated, newest first."""
    for _ in range(3):
        await _deliver(async_client)

    response = await async_client.get("/v1/ipn/logs", params={"page": 1, "page_size": 2})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["page"] == 1
    assert data["page_size"] == 2
    assert len(data["items"]) == 2
    assert data["items"][0]["created_at"] >= data["items"][1]["created_at"]


@pytest.mark.asyncio
async def test_list_logs_filters_by_status(async_client: AsyncClient, active_config: str) -> None:
    """The status filter narrows results."""
    await _deliver(async_client)
    await _deliver(async_client, secret="wrong-secret")

    response = await async_client.get("/v1/ipn/logs", params={"status": "failed"})

    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["status"] == "failed"
    assert data["items"][0]["error_message"] == "Invalid signature"


@pytest.mark.asyncio
async def test_list_logs_filters_by_date_range(
    async_client: AsyncClient, db_session: AsyncSession, active_config: str
) -> None:
    """start_date and end_date bound the creation day, both inclusive."""
    await _deliver(async_client, transactionRef="OLD-1")
    await _deliver(async_client, transactionRef="MID-1")
    await _deliver(async_client, transactionRef="NEW-1")
    await _backdate(db_session, "OLD-1", days=10)
    await _backdate(db_session, "MID-1", days=3)

    today = datetime.utcnow().date()
    response = await async_client.get(
        "/v1/ipn/logs",
        params={
            "start_date": (today - timedelta(days=5)).isoformat(),
            "end_date": (today - timedelta(days=1)).isoformat(),
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["transaction_ref"] == "MID-1"

    response = await async_client.get("/v1/ipn/logs", params={"start_date": today.isoformat()})
    assert [item["transaction_ref"] for item in response.json()["items"]] == ["NEW-1"]

    response = await async_client.get("/v1/ipn/logs", params={"end_date": today.isoformat()})
    assert response.json()["total"] == 3


@pytest.mark.asyncio
async def test_list_logs_rejects_inverted_date_range(async_client: AsyncClient) -> None:
    """A start_date after end_date is a client error."""
    response = await async_client.get(
        "/v1/ipn/logs",
        params={"start_date": "2026-10-18", "end_date": "2026-10-01"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_logs_page_size_bounded(async_client: AsyncClient) -> None:
    """Page sizes above the maximum are rejected."""
    response = await async_client.get("/v1/ipn/logs", params={"page_size": 10000})

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_get_log_entry(async_client: AsyncClient, active_config: str) -> None:
    """A single entry includes request and response payloads."""
    result = await _deliver(async_client, secret=active_config, transactionRef="REF-LOOKUP")
    listing = await async_client.get("/v1/ipn/logs")
    log_id = listing.json()["items"][0]["id"]

    response = await async_client.get(f"/v1/ipn/logs/{log_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["transaction_ref"] == "REF-LOOKUP"
    assert data["request_payload"]["transactionRef"] == "REF-LOOKUP"
    assert data["response_payload"] == {"success": True, "paymentId": result["paymentId"]}
    assert "raw_body" not in data


@pytest.mark.asyncio
async def test_get_missing_log_returns_404(async_client: AsyncClient) -> None:
    """Unknown IDs return 404."""
    response = await async_client.get(f"/v1/ipn/logs/{uuid4()}")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_retry_failed_entry(async_client: AsyncClient, active_config: str) -> None:
    """Retrying a failed entry queues it and increments the retry count."""
    log_id = await _failed_log_id(async_client)

    response = await async_client.post(f"/v1/ipn/logs/{log_id}/retry")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "retry"
    assert data["retry_count"] == 1


@pytest.mark.asyncio
async def test_retry_non_failed_entry_conflicts(async_client: AsyncClient, active_config: str) -> None:
    """Only failed entries are eligible."""
    await _deliver(async_client)
    log_id = (await async_client.get("/v1/ipn/logs")).json()["items"][0]["id"]

    response = await async_client.post(f"/v1/ipn/logs/{log_id}/retry")

    assert response.status_code == 409
    assert "Only failed notifications can be retried" in response.json()["detail"]


@pytest.mark.asyncio
async def test_retry_limit_enforced(
    async_client: AsyncClient, db_session: AsyncSession, make_config
) -> None:
    """Entries at the configured retry limit cannot be retried again."""
    await make_config(retry_attempts=1)
    log_id = await _failed_log_id(async_client)

    first = await async_client.post(f"/v1/ipn/logs/{log_id}/retry")
    assert first.status_code == 200

    # redelivery failed again
    await IPNLogService(db_session).update(UUID(log_id), status=IPNLogStatus.FAILED)
    await db_session.commit()

    second = await async_client.post(f"/v1/ipn/logs/{log_id}/retry")

    assert second.status_code == 409
    assert "Retry limit of 1 reached" in second.json()["detail"]


@pytest.mark.asyncio
async def test_retry_missing_entry_returns_404(async_client: AsyncClient) -> None:
    """Retrying an unknown ID returns 404."""
    response = await async_client.post(f"/v1/ipn/logs/{uuid4()}/retry")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_retry_service_raises_not_found(db_session: AsyncSession) -> None:
    """The coordinator itself reports unknown IDs."""
    with pytest.raises(NotFoundError):
        await IPNRetryService(db_session).retry(uuid4())


@pytest.mark.asyncio
async def test_export_logs_csv(async_client: AsyncClient, active_config: str) -> None:
    """Logs export as CSV with a header row."""
    await _deliver(async_client, transactionRef="CSV-1")
    await _deliver(async_client, secret="wrong-secret", transactionRef="CSV-2")

    response = await async_client.get("/v1/ipn/logs/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["ID", "Transaction Ref", "Status", "Response Time", "Created At"]
    assert sorted(row[1] for row in rows[1:]) == ["CSV-1", "CSV-2"]
    assert {row[2] for row in rows[1:]} == {"success", "failed"}


@pytest.mark.asyncio
async def test_export_logs_csv_filtered(async_client: AsyncClient, active_config: str) -> None:
    """The export honours the status filter."""
    await _deliver(async_client, transactionRef="CSV-OK")
    await _deliver(async_client, secret="wrong-secret", transactionRef="CSV-BAD")

    response = await async_client.get("/v1/ipn/logs/export", params={"status": "failed"})

    rows = list(csv.reader(io.StringIO(response.text)))
    assert [row[1] for row in rows[1:]] == ["CSV-BAD"]


@pytest.mark.asyncio
async def test_export_logs_csv_filtered_by_date(
    async_client: AsyncClient, db_session: AsyncSession, active_config: str
) -> None:
    """The export honours the creation day range."""
    await _deliver(async_client, transactionRef="CSV-OLD")
    await _deliver(async_client, transactionRef="CSV-NEW")
    await _backdate(db_session, "CSV-OLD", days=30)

    today = datetime.utcnow().date()
    response = await async_client.get(
        "/v1/ipn/logs/export",
        params={"start_date": (today - timedelta(days=7)).isoformat(), "end_date": today.isoformat()},
    )

    assert response.status_code == 200
    rows = list(csv.reader(io.StringIO(response.text)))
    assert [row[1] for row in rows[1:]] == ["CSV-NEW"]
