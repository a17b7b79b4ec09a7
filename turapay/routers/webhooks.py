import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from turapay import gateways
from turapay.config import Config
from turapay.database import get_db
from turapay.errors import Unauthorized
from turapay.schemas.requests import GatewayEvent
from turapay.services.reconciliation import handle_gateway_event

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/lipila")
async def lipila_webhook(
    event: GatewayEvent,
    x_webhook_secret: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    """
    Gateway callback for collection and disbursement outcomes.

    When LIPILA_WEBHOOK_SECRET is set, the `x-webhook-secret` header must match.
    The reported status is re-checked with the gateway before it is applied.
    """
    secret = Config.LIPILA_WEBHOOK_SECRET
    if secret and not hmac.compare_digest(secret, x_webhook_secret or ""):
        logger.warning(f"Rejected webhook for {event.reference_id}: bad secret")
        raise Unauthorized("Invalid webhook secret")
    return await handle_gateway_event(db, event, gateways.get_gateway())
