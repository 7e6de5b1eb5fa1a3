"""Commission settlement.

Turns one confirmed payment by a referred member into at most one
commission for their referrer.

1. Skip payments that already have a commission
2. Resolve the referrer's policy for the payment date
3. Classify first vs recurring from the referred member's payment history
4. Enforce the recurring cap
5. Price the commission and insert it under a savepoint; the unique
   ``payment_id`` constraint settles concurrent duplicates
"""

import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import InvalidAmount, InvalidReference, NotFoundError
from libs.common.logging import get_logger
from services.loyalty_service.models import (
    CONFIRMED_PAYMENT_STATUSES,
    Commission,
    CommissionConfig,
    CommissionStatus,
    CommissionType,
    CommissionValueType,
    GatewayPayment,
    Referral,
    User,
)
from services.loyalty_service.services.config_resolver import (
    resolve_commission_config,
)
from sqlalchemy import and_, case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def commission_value(
    value_type: CommissionValueType, configured: Decimal, payment_value: Decimal
) -> Decimal:
    """Percentage of the payment, or a fixed amount."""
    if value_type == CommissionValueType.PERCENTAGE:
        return to_money(to_money(payment_value) * Decimal(str(configured)) / 100)
    return to_money(configured)


async def classify_payment(
    db: AsyncSession,
    *,
    referred_id: uuid.UUID,
    payment_id: uuid.UUID,
    payment_date: datetime,
) -> CommissionType:
    """First iff no confirmed payment by the member predates this one."""
    prior = await db.scalar(
        select(func.count()).where(
            GatewayPayment.user_id == referred_id,
            GatewayPayment.id != payment_id,
            GatewayPayment.status.in_(CONFIRMED_PAYMENT_STATUSES),
            GatewayPayment.payment_date.is_not(None),
            GatewayPayment.payment_date < payment_date,
        )
    )
    return CommissionType.FIRST if not prior else CommissionType.RECURRING


async def existing_commission_id(
    db: AsyncSession, *, payment_id: uuid.UUID
) -> Optional[uuid.UUID]:
    return await db.scalar(
        select(Commission.id).where(Commission.payment_id == payment_id)
    )


async def recurring_count(
    db: AsyncSession, *, referrer_id: uuid.UUID, referred_id: uuid.UUID
) -> int:
    return (
        await db.scalar(
            select(func.count()).where(
                Commission.referrer_id == referrer_id,
                Commission.referred_id == referred_id,
                Commission.commission_type == CommissionType.RECURRING,
            )
        )
        or 0
    )


async def settle_commission(
    db: AsyncSession,
    *,
    referrer_id: uuid.UUID,
    referred_id: uuid.UUID,
    payment_value: Decimal,
    payment_date: datetime,
    payment_id: uuid.UUID,
) -> Optional[Commission]:
    """Record the commission owed for one payment.

    Returns the new commission, or None when nothing is owed: payment already
    settled, no applicable policy, or recurring cap reached.
    """
    if payment_value is None or payment_value < 0:
        raise InvalidAmount(
            "Payment value must be zero or positive",
            details={"payment_id": str(payment_id)},
        )

    existing = await existing_commission_id(db, payment_id=payment_id)
    if existing:
        logger.info("Payment %s already has commission %s", payment_id, existing)
        return None

    if not await db.get(User, referrer_id):
        raise InvalidReference(f"Referrer {referrer_id} not found")
    if not await db.get(User, referred_id):
        raise InvalidReference(f"Referred user {referred_id} not found")

    config = await resolve_commission_config(
        db, referrer_id=referrer_id, on_date=payment_date
    )
    if not config:
        logger.info(
            "No commission config applies to referrer %s on %s",
            referrer_id,
            payment_date.date().isoformat(),
        )
        return None

    commission_type = await classify_payment(
        db, referred_id=referred_id, payment_id=payment_id, payment_date=payment_date
    )

    if commission_type == CommissionType.FIRST:
        value = commission_value(
            config.first_payment_type, config.first_payment_value, payment_value
        )
    else:
        if config.recurring_limit is not None:
            already = await recurring_count(
                db, referrer_id=referrer_id, referred_id=referred_id
            )
            if already >= config.recurring_limit:
                logger.info(
                    "Recurring limit %d reached for %s -> %s",
                    config.recurring_limit,
                    referrer_id,
                    referred_id,
                )
                return None
        value = commission_value(
            config.recurring_payment_type, config.recurring_payment_value, payment_value
        )

    commission = Commission(
        referrer_id=referrer_id,
        referred_id=referred_id,
        payment_id=payment_id,
        config_id=config.id,
        value=value,
        commission_type=commission_type,
        status=CommissionStatus.PENDING,
        created_at=utc_now(),
    )
    try:
        async with db.begin_nested():
            db.add(commission)
            await db.flush()
    except IntegrityError:
        winner = await db.scalar(
            select(Commission.id).where(Commission.payment_id == payment_id)
        )
        if winner is None:
            raise
        # A concurrent delivery recorded this payment first
        logger.info(
            "Duplicate commission for payment %s ignored (existing=%s)",
            payment_id,
            winner,
        )
        return None

    logger.info(
        "Commission %s settled: %s %s for referrer %s (payment=%s, config=%s)",
        commission.id,
        commission_type.value,
        value,
        referrer_id,
        payment_id,
        config.id,
    )
    return commission


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


async def get_commission_summary(
    db: AsyncSession, *, referrer_id: uuid.UUID, now: Optional[datetime] = None
) -> dict:
    """Totals by type/state plus the payout minimum currently in force."""
    if not await db.get(User, referrer_id):
        raise NotFoundError(f"User {referrer_id} not found")

    zero = Decimal("0")

    def _sum_where(*conditions):
        return func.coalesce(
            func.sum(case((and_(*conditions), Commission.value), else_=zero)), zero
        )

    pending = Commission.status == CommissionStatus.PENDING
    row = (
        await db.execute(
            select(
                func.count(Commission.id),
                func.coalesce(func.sum(Commission.value), zero),
                _sum_where(Commission.commission_type == CommissionType.FIRST),
                _sum_where(Commission.commission_type == CommissionType.RECURRING),
                _sum_where(pending, Commission.payout_request_id.is_(None)),
                _sum_where(pending, Commission.payout_request_id.is_not(None)),
                _sum_where(Commission.status == CommissionStatus.PAID),
            ).where(Commission.referrer_id == referrer_id)
        )
    ).one()

    referral_count = await db.scalar(
        select(func.count()).where(Referral.referrer_id == referrer_id)
    )
    config: Optional[CommissionConfig] = await resolve_commission_config(
        db, referrer_id=referrer_id, on_date=now or utc_now()
    )
    min_payout = to_money(config.min_payout_amount) if config else None
    available = to_money(row[4])

    return {
        "user_id": referrer_id,
        "commission_count": row[0],
        "total": to_money(row[1]),
        "total_first": to_money(row[2]),
        "total_recurring": to_money(row[3]),
        "pending_available": available,
        "pending_in_payout": to_money(row[5]),
        "paid": to_money(row[6]),
        "referrals": referral_count or 0,
        "min_payout_amount": min_payout,
        "can_request_payout": bool(
            min_payout is not None and available > 0 and available >= min_payout
        ),
    }
