"""Structured error response schemas."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    field: str | None = Field(default=None, description="Field that caused the error (for validation errors)")
    value: Any | None = Field(default=None, description="Invalid value (for validation errors)")


class ErrorResponse(BaseModel):
    """Standard error response structure for the administrative API.

    The gateway-facing webhook answers with ``{success, message}`` instead,
    since that is the contract the gateway expects.
    """

    error: str = Field(..., description="Error type (e.g., 'ValidationError', 'NotFound')")
    message: str = Field(..., description="Primary error message")
    details: list[ErrorDetail] | None = Field(default=None, description="Detailed error information")
    remediation: str | None = Field(default=None, description="Suggestion for fixing the error")
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "ValidationError",
                "message": "Request validation failed",
                "details": [
                    {
                        "code": "value_too_large",
                        "message": "Input should be less than or equal to 200",
                        "field": "query.page_size",
                        "value": 500,
                    }
                ],
                "remediation": "Check the API documentation for correct request format at /docs",
                "request_id": "req_1234567890ab",
                "timestamp": "2026-01-15T10:30:00Z",
            }
        }
    )


# Error codes enum for consistency
class ErrorCode:
    """Standard error codes used across the API."""

    # Validation errors (422)
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_ENUM_VALUE = "invalid_enum_value"
    INVALID_UUID = "invalid_uuid"
    VALUE_TOO_SMALL = "value_too_small"
    VALUE_TOO_LARGE = "value_too_large"

    # Business logic errors (409)
    RETRY_NOT_ALLOWED = "retry_not_allowed"

    # Not found errors (404)
    IPN_LOG_NOT_FOUND = "ipn_log_not_found"
    IPN_CONFIG_NOT_FOUND = "ipn_config_not_found"
    PAYMENT_NOT_FOUND = "payment_not_found"
    TEST_SCENARIO_NOT_FOUND = "test_scenario_not_found"

    # External service errors (503)
    DATABASE_ERROR = "database_error"

    # Internal errors (500)
    INTERNAL_ERROR = "internal_error"


# Remediation hints for common errors
REMEDIATION_HINTS = {
    ErrorCode.RETRY_NOT_ALLOWED: "Only failed notifications below the configured retry limit can be retried.",
    ErrorCode.IPN_CONFIG_NOT_FOUND: "Create the IPN configuration with PUT /v1/ipn/config before using this feature.",
    ErrorCode.DATABASE_ERROR: "Database temporarily unavailable. Please try again in a few moments.",
}
