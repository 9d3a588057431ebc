"""Payment gateway IPN webhook."""
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.config import settings
from rentdesk.database import get_db
from rentdesk.services.ipn_processor import IPNProcessor

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks/ipn", tags=["webhooks"])

UNKNOWN_CLIENT = "unknown"


def client_ip(request: Request) -> str:
    """
    Resolve the caller IP behind proxies.

    Uses the first X-Forwarded-For hop, then X-Real-IP.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.headers.get("x-real-ip") or UNKNOWN_CLIENT


@router.post("")
async def handle_ipn_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Handle an instant payment notification from the gateway.

    The signature is verified over the raw body bytes, before any JSON
    parsing. Every response uses the ``{success, message, paymentId}``
    shape the gateway expects:

    - 200: payment created or updated
    - 401: invalid or missing signature
    - 500: malformed body or processing failure
    - 503: IPN processing not configured

    Args:
        request: FastAPI request with the notification body
        db: Database session

    Returns:
        JSON response for the gateway
    """
    body = await request.body()
    signature = request.headers.get(settings.ipn_signature_header)

    result = await IPNProcessor(db).process(
        raw_body=body,
        signature=signature,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent") or UNKNOWN_CLIENT,
    )

    return JSONResponse(status_code=result.status_code, content=result.body)
