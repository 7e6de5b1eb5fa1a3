"""Payment-gateway notification processing.

The caller owns the transaction: everything here flushes into one unit of
work so a failure anywhere leaves no partial activation, points or
commission behind.
"""

import hmac
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import parse_iso_datetime, utc_now
from libs.common.errors import ValidationError
from libs.common.logging import get_logger
from services.loyalty_service.models import (
    ACTIVATING_EVENTS,
    CONFIRMED_PAYMENT_STATUSES,
    Commission,
    GatewayPayment,
    User,
)
from services.loyalty_service.services.commission_engine import settle_commission
from services.loyalty_service.services.referral_service import (
    ActivationResult,
    activate_member,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

PAYMENT_DATE_FIELDS = ("confirmedDate", "clientPaymentDate", "paymentDate", "date", "dateCreated")
EARLIEST_PLAUSIBLE_YEAR = 2000


@dataclass
class WebhookOutcome:
    processed: bool
    message: str
    activation: Optional[ActivationResult] = None
    commission: Optional[Commission] = None


def verify_webhook_token(
    token: Optional[str], *, internal_test: Optional[str] = None
) -> bool:
    """Constant-time check of the gateway's access token.

    ``x-internal-test: true`` is honoured outside production only.
    """
    settings = get_settings()
    if internal_test and internal_test.lower() == "true" and not settings.is_production:
        return True
    if not token:
        return False
    return hmac.compare_digest(token.encode(), settings.PAYMENT_WEBHOOK_TOKEN.encode())


def payload_payment_date(payment: dict[str, Any]) -> Optional[datetime]:
    """First parsable, plausible date field from the payload."""
    for field in PAYMENT_DATE_FIELDS:
        parsed = parse_iso_datetime(payment.get(field))
        if parsed is None:
            continue
        if parsed.year < EARLIEST_PLAUSIBLE_YEAR:
            logger.warning("Ignoring implausible %s=%s", field, payment.get(field))
            continue
        return parsed
    return None


def _to_decimal(raw: Any) -> Optional[Decimal]:
    if raw is None:
        return None
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        return None


def _to_int(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric installmentNumber=%r", raw)
        return None


async def process_payment_event(
    db: AsyncSession,
    payload: dict[str, Any],
    *,
    now: Optional[datetime] = None,
) -> WebhookOutcome:
    """Apply one gateway notification.

    Updates the local payment mirror and, for received/confirmed events,
    activates the member (converting their referral once) and settles the
    referrer's commission for this payment.
    """
    now = now or utc_now()
    event = str(payload.get("event") or "").upper()
    payment_data = payload.get("payment") or {}
    if not isinstance(payment_data, dict):
        raise ValidationError("payment must be an object")
    gateway_id = payment_data.get("id")
    if not gateway_id:
        raise ValidationError("payment.id is required")

    payment = await db.scalar(
        select(GatewayPayment)
        .where(GatewayPayment.gateway_payment_id == str(gateway_id))
        .with_for_update()
    )
    if not payment:
        logger.warning(
            "Webhook received for unknown payment %s",
            gateway_id,
            extra={"extra_fields": {"gateway_payment_id": gateway_id, "event": event}},
        )
        return WebhookOutcome(processed=False, message="payment not found")

    # Redeliveries without a date keep the one already stored
    payment_date = payload_payment_date(payment_data) or payment.payment_date or now
    status = payment_data.get("status")
    if status:
        payment.status = str(status).lower()
    value = _to_decimal(payment_data.get("value"))
    if value is not None:
        payment.value = value
    net_value = _to_decimal(payment_data.get("netValue"))
    if net_value is not None:
        payment.net_value = net_value
    installment = _to_int(payment_data.get("installmentNumber"))
    if installment is not None:
        payment.installment_number = installment
    payment.payment_date = payment_date
    payment.webhook_received_at = now
    await db.flush()

    logger.info(
        "Payment %s updated from %s (status=%s)",
        gateway_id,
        event or "unknown event",
        payment.status,
        extra={"extra_fields": {"payment_id": str(payment.id), "event": event}},
    )

    if event not in ACTIVATING_EVENTS:
        return WebhookOutcome(processed=True, message=f"{event or 'event'} recorded")

    if payment.status not in CONFIRMED_PAYMENT_STATUSES:
        # Event names say money arrived; keep the mirror consistent with that
        payment.status = "received" if event == "PAYMENT_RECEIVED" else "confirmed"
        await db.flush()

    activation = await activate_member(
        db, user_id=payment.user_id, activated_at=payment_date
    )

    commission = None
    member = await db.get(User, payment.user_id)
    if member and member.referred_by:
        commission = await settle_commission(
            db,
            referrer_id=member.referred_by,
            referred_id=member.id,
            payment_value=payment.value,
            payment_date=payment_date,
            payment_id=payment.id,
        )

    return WebhookOutcome(
        processed=True,
        message="payment confirmed",
        activation=activation,
        commission=commission,
    )
