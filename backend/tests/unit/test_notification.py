"""Unit tests for notification decoding and status mapping."""
import pytest

from rentdesk.exceptions import MalformedRequest
from rentdesk.models.payment import PaymentStatus
from rentdesk.schemas.ipn_notification import GatewayStatus, IPNNotification
from rentdesk.services.ipn_processor import parse_notification
from rentdesk.services.reconciliation_service import map_gateway_status


@pytest.mark.parametrize(
    "token, expected",
    [
        ("SUCCESS", PaymentStatus.PAID),
        ("PARTIAL", PaymentStatus.PARTIAL),
        ("FAILED", PaymentStatus.FAILED),
        ("success", PaymentStatus.FAILED),
        ("Partial", PaymentStatus.FAILED),
        ("PENDING", PaymentStatus.FAILED),
        ("", PaymentStatus.FAILED),
        (None, PaymentStatus.FAILED),
        (1, PaymentStatus.FAILED),
    ],
)
def test_status_mapping(token, expected: PaymentStatus) -> None:
    """Only exact SUCCESS and PARTIAL tokens avoid the failed fallback."""
    notification = IPNNotification.model_validate({"status": token} if token is not None else {})

    assert map_gateway_status(notification.gateway_status) == expected


def test_unknown_tokens_decode_to_unknown() -> None:
    """Unrecognized tokens are decoded once into UNKNOWN."""
    assert GatewayStatus.decode("REVERSED") == GatewayStatus.UNKNOWN
    assert GatewayStatus.decode(None) == GatewayStatus.UNKNOWN


def test_reference_prefers_camel_case_field() -> None:
    """``transactionRef`` wins; ``transaction_ref`` is the legacy fallback."""
    assert IPNNotification.model_validate({"transactionRef": "A", "transaction_ref": "B"}).reference == "A"
    assert IPNNotification.model_validate({"transaction_ref": "B"}).reference == "B"


@pytest.mark.parametrize("primary", [None, "", "  "])
def test_blank_camel_case_reference_falls_back(primary) -> None:
    """A null or blank ``transactionRef`` does not hide ``transaction_ref``."""
    notification = IPNNotification.model_validate({"transactionRef": primary, "transaction_ref": "B"})

    assert notification.reference == "B"


def test_blank_reference_logged_as_unknown() -> None:
    """Blank references count as missing."""
    notification = IPNNotification.model_validate({"transactionRef": "   "})

    assert notification.reference is None
    assert notification.log_reference == "unknown"


def test_unknown_fields_are_kept() -> None:
    """Extra gateway fields survive decoding."""
    notification = IPNNotification.model_validate({"transactionRef": "A", "phoneNumber": "254700000000"})

    assert notification.model_extra == {"phoneNumber": "254700000000"}


def test_parse_notification_returns_payload_and_text() -> None:
    """The decoded payload and original text are returned together."""
    notification, payload, text = parse_notification(b'{"transactionRef":"A","amount":1}')

    assert notification.reference == "A"
    assert payload == {"transactionRef": "A", "amount": 1}
    assert text == '{"transactionRef":"A","amount":1}'


@pytest.mark.parametrize("body", [b"", b"null", b'"text"', b"{broken", b"\x80"])
def test_parse_notification_rejects_non_objects(body: bytes) -> None:
    """Anything but a UTF-8 JSON object is malformed."""
    with pytest.raises(MalformedRequest):
        parse_notification(body)
