"""Domain errors raised by the IPN pipeline.

Each error carries the HTTP status the webhook or admin API answers with.
They are caught at the endpoint boundary and never escape as unhandled
faults.
"""
from fastapi import status


class IPNError(Exception):
    """Base class for IPN pipeline errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(IPNError):
    """No active IPN configuration; a system state, not a notification outcome."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "IPN processing is not configured or inactive"):
        super().__init__(message)


class SignatureInvalid(IPNError):
    """Signature verification ran and did not match, or was required and missing."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)


class MalformedRequest(IPNError):
    """Request body could not be decoded into a notification."""

    def __init__(self, message: str = "Invalid request payload"):
        super().__init__(message)


class ReconciliationError(IPNError):
    """Mapping or persistence failure while reconciling a payment."""


class LogWriteError(IPNError):
    """The notification log could not be written."""


class NotFoundError(IPNError):
    """Requested entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class RetryNotAllowed(IPNError):
    """Log entry is not eligible for retry."""

    status_code = status.HTTP_409_CONFLICT
