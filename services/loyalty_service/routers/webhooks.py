"""Payment gateway webhook endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from libs.common.errors import ValidationError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from libs.db.unit_of_work import unit_of_work
from services.loyalty_service.schemas import WebhookAck
from services.loyalty_service.services.webhook_service import (
    process_payment_event,
    verify_webhook_token,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = get_logger(__name__)


@router.post("/payments", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    access_token: Optional[str] = Header(None, alias="asaas-access-token"),
    internal_test: Optional[str] = Header(None, alias="x-internal-test"),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Gateway payment notifications (no user auth; verified by access token).
    """
    if not verify_webhook_token(access_token, internal_test=internal_test):
        logger.warning("Rejected payment webhook with invalid access token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Invalid webhook token"
        )

    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Webhook body must be JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")

    async with unit_of_work(db):
        outcome = await process_payment_event(db, payload)

    return WebhookAck(
        processed=outcome.processed,
        message=outcome.message,
        activated=outcome.activation.activated if outcome.activation else None,
        commission_id=outcome.commission.id if outcome.commission else None,
    )
