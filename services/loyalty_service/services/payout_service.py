"""Payout requests over pending commissions.

A request claims every unclaimed pending commission of the referrer by
stamping ``payout_request_id``; its amount is the sum of the rows actually
stamped. A commission belongs to at most one open request.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    BelowMinimum,
    MissingPayoutInfo,
    NoCommissionPolicy,
    NotFoundError,
    PolicyViolation,
)
from libs.common.logging import get_logger
from services.loyalty_service.models import (
    Commission,
    CommissionStatus,
    PayoutRequest,
    PayoutStatus,
    User,
)
from services.loyalty_service.services.commission_engine import to_money
from services.loyalty_service.services.config_resolver import (
    resolve_commission_config,
)
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _unclaimed(user_id: uuid.UUID):
    return (
        Commission.referrer_id == user_id,
        Commission.status == CommissionStatus.PENDING,
        Commission.payout_request_id.is_(None),
    )


async def available_for_payout(db: AsyncSession, *, user_id: uuid.UUID) -> Decimal:
    total = await db.scalar(
        select(func.coalesce(func.sum(Commission.value), Decimal("0"))).where(
            *_unclaimed(user_id)
        )
    )
    return to_money(total or 0)


async def request_payout(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> PayoutRequest:
    """Open a payout request for everything the referrer can withdraw.

    Raises MissingPayoutInfo without a payout destination, NoCommissionPolicy
    when no policy defines a minimum, and BelowMinimum when the claimable
    amount is under it.
    """
    now = now or utc_now()
    user = await db.scalar(select(User).where(User.id == user_id).with_for_update())
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    if not user.payout_info:
        raise MissingPayoutInfo("Register payout details before requesting a payout")

    config = await resolve_commission_config(db, referrer_id=user_id, on_date=now)
    if not config:
        raise NoCommissionPolicy("No commission policy defines a payout minimum")
    minimum = to_money(config.min_payout_amount)

    available = await available_for_payout(db, user_id=user_id)
    if available <= 0 or available < minimum:
        raise BelowMinimum(
            f"Available {available} is below the minimum payout of {minimum}",
            details={"available": str(available), "minimum": str(minimum)},
        )

    payout = PayoutRequest(
        user_id=user_id,
        request_amount=Decimal("0.00"),
        payout_method=dict(user.payout_info),
        status=PayoutStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    db.add(payout)
    await db.flush()

    stamped = await db.execute(
        update(Commission)
        .where(*_unclaimed(user_id))
        .values(payout_request_id=payout.id)
        .returning(Commission.id, Commission.value)
    )
    rows = stamped.all()
    amount = to_money(sum((Decimal(str(value)) for _, value in rows), Decimal("0")))

    # Another request may have claimed rows between the sum and the stamp
    if amount <= 0 or amount < minimum:
        raise BelowMinimum(
            f"Claimed {amount} is below the minimum payout of {minimum}",
            details={"available": str(amount), "minimum": str(minimum)},
        )

    payout.request_amount = amount
    await db.flush()

    logger.info(
        "Payout request %s created for user %s: %s over %d commissions",
        payout.id,
        user_id,
        amount,
        len(rows),
    )
    return payout


async def _get_payout_for_update(db: AsyncSession, payout_id: uuid.UUID) -> PayoutRequest:
    payout = await db.scalar(
        select(PayoutRequest).where(PayoutRequest.id == payout_id).with_for_update()
    )
    if not payout:
        raise NotFoundError(f"Payout request {payout_id} not found")
    return payout


def _ensure_decidable(payout: PayoutRequest, target: PayoutStatus) -> bool:
    """True when the request still needs deciding; False when already ``target``."""
    if payout.status == target:
        return False
    if payout.status != PayoutStatus.PENDING:
        raise PolicyViolation(
            f"Payout request {payout.id} was already {payout.status.value}"
        )
    return True


async def approve_payout(
    db: AsyncSession,
    *,
    payout_id: uuid.UUID,
    processed_by: str,
    now: Optional[datetime] = None,
) -> PayoutRequest:
    """Approve a pending request and mark its commissions paid."""
    now = now or utc_now()
    payout = await _get_payout_for_update(db, payout_id)
    if not _ensure_decidable(payout, PayoutStatus.APPROVED):
        return payout

    paid = await db.execute(
        update(Commission)
        .where(
            Commission.payout_request_id == payout.id,
            Commission.status == CommissionStatus.PENDING,
        )
        .values(status=CommissionStatus.PAID, paid_at=now)
    )
    payout.status = PayoutStatus.APPROVED
    payout.processed_by = processed_by
    payout.processed_at = now
    payout.updated_at = now
    await db.flush()

    logger.info(
        "Payout request %s approved by %s (%d commissions paid, amount=%s)",
        payout.id,
        processed_by,
        paid.rowcount or 0,
        payout.request_amount,
    )
    return payout


async def reject_payout(
    db: AsyncSession,
    *,
    payout_id: uuid.UUID,
    processed_by: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PayoutRequest:
    """Reject a pending request; its commissions return to the claimable pool."""
    now = now or utc_now()
    payout = await _get_payout_for_update(db, payout_id)
    if not _ensure_decidable(payout, PayoutStatus.REJECTED):
        return payout

    released = await db.execute(
        update(Commission)
        .where(Commission.payout_request_id == payout.id)
        .values(payout_request_id=None)
    )
    payout.status = PayoutStatus.REJECTED
    payout.processed_by = processed_by
    payout.processed_at = now
    payout.rejection_reason = reason
    payout.updated_at = now
    await db.flush()

    logger.info(
        "Payout request %s rejected by %s (%d commissions released)",
        payout.id,
        processed_by,
        released.rowcount or 0,
    )
    return payout


async def list_payout_requests(
    db: AsyncSession,
    *,
    user_id: Optional[uuid.UUID] = None,
    status: Optional[PayoutStatus] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[PayoutRequest], int]:
    query = select(PayoutRequest)
    if user_id is not None:
        query = query.where(PayoutRequest.user_id == user_id)
    if status is not None:
        query = query.where(PayoutRequest.status == status)

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
    result = await db.execute(
        query.order_by(PayoutRequest.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def get_payout_commissions(
    db: AsyncSession, *, payout_id: uuid.UUID
) -> list[Commission]:
    result = await db.execute(
        select(Commission)
        .where(Commission.payout_request_id == payout_id)
        .order_by(Commission.created_at.asc())
    )
    return list(result.scalars().all())
