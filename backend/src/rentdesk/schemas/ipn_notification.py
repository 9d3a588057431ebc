"""Inbound IPN notification payload."""
import enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class GatewayStatus(enum.Enum):
    """Status vocabulary reported by the gateway, decoded once at the boundary."""

    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def decode(cls, token: Any) -> "GatewayStatus":
        """Decode a raw status token; only exact, case-sensitive tokens match."""
        if isinstance(token, str):
            for member in (cls.SUCCESS, cls.PARTIAL, cls.FAILED):
                if token == member.value:
                    return member
        return cls.UNKNOWN


UNKNOWN_REFERENCE = "unknown"
REFERENCE_KEYS = ("transactionRef", "transaction_ref")


def _is_blank(value: Any) -> bool:
    return value is None or value is False or (isinstance(value, str) and not value.strip())


class IPNNotification(BaseModel):
    """
    Decoded notification body.

    Every field is optional; unknown fields are kept so the log stores the
    payload verbatim. Field values are validated during reconciliation, not
    here, so an odd amount still produces a logged failure rather than a
    rejected request.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    transaction_ref: Any = Field(
        default=None,
        validation_alias=AliasChoices("transactionRef", "transaction_ref"),
        description="Gateway transaction reference (older callers send transaction_ref)",
    )
    amount: Any = Field(default=None, description="Paid amount")
    currency: Any = Field(default=None, description="ISO currency code")
    status: Any = Field(default=None, description="Gateway status token: SUCCESS, PARTIAL, FAILED")
    timestamp: Any = Field(default=None, description="ISO-8601 payment timestamp")
    payment_method: Any = Field(
        default=None,
        validation_alias=AliasChoices("paymentMethod", "payment_method"),
        description="Payment channel, e.g. M-PESA",
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_reference(cls, data: Any) -> Any:
        """Take the first non-blank of transactionRef and transaction_ref."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        values = [data.pop(key) for key in REFERENCE_KEYS if key in data]
        data["transactionRef"] = next((value for value in values if not _is_blank(value)), None)
        return data

    @property
    def reference(self) -> str | None:
        """Transaction reference as text, or None when absent or blank."""
        if self.transaction_ref is None:
            return None
        ref = str(self.transaction_ref).strip()
        return ref or None

    @property
    def log_reference(self) -> str:
        """Reference stored on the log row; missing references become 'unknown'."""
        return self.reference or UNKNOWN_REFERENCE

    @property
    def gateway_status(self) -> GatewayStatus:
        """Decoded status token."""
        return GatewayStatus.decode(self.status)


class IPNWebhookResponse(BaseModel):
    """Response body returned to the gateway."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    payment_id: str | None = Field(default=None, serialization_alias="paymentId")
