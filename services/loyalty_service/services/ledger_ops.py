"""Points ledger: grants, deductions, effective balance, expiry and renewal.

Every read that decides whether points count goes through ``_live_entries``
so balance, expiring listings and renewal agree on what is live.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import add_months, add_years, utc_now
from libs.common.errors import (
    InsufficientPoints,
    InvalidAmount,
    NotFoundError,
    PolicyViolation,
    ValidationError,
)
from libs.common.logging import get_logger
from services.loyalty_service.models import LedgerEntry, LedgerKind, User, UserStatus
from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

logger = get_logger(__name__)

EXPIRING_PAGE_SIZE = 100


# ---------------------------------------------------------------------------
# Shared predicate
# ---------------------------------------------------------------------------


def _live_entries(now: datetime) -> ColumnElement[bool]:
    return and_(
        LedgerEntry.expired.is_(False),
        LedgerEntry.redeemed.is_(False),
        LedgerEntry.expires_at > now,
    )


def default_expiry(kind: LedgerKind, earned_at: datetime) -> datetime:
    """Deductions never lapse; grants last ``POINTS_EXPIRY_MONTHS``."""
    settings = get_settings()
    if kind == LedgerKind.REDEMPTION:
        return add_years(earned_at, settings.REDEMPTION_EXPIRY_YEARS)
    return add_months(earned_at, settings.POINTS_EXPIRY_MONTHS)


async def _get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


# ---------------------------------------------------------------------------
# Append
# ---------------------------------------------------------------------------


async def award_points(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    points: int,
    kind: LedgerKind,
    description: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    expires_at: Optional[datetime] = None,
    renewable: bool = False,
    earned_at: Optional[datetime] = None,
) -> LedgerEntry:
    """Append one ledger entry.

    Grants are positive and deductions (redemption kind) negative; zero is
    never accepted.
    """
    if points == 0:
        raise InvalidAmount("Points must be non-zero")
    if kind == LedgerKind.REDEMPTION and points > 0:
        raise InvalidAmount("Redemption entries must deduct points")
    if kind != LedgerKind.REDEMPTION and points < 0:
        raise InvalidAmount(f"{kind.value} entries must grant points")

    await _get_user(db, user_id)

    earned_at = earned_at or utc_now()
    entry = LedgerEntry(
        user_id=user_id,
        points=points,
        kind=kind,
        description=description,
        entry_metadata=metadata,
        earned_at=earned_at,
        expires_at=expires_at or default_expiry(kind, earned_at),
        renewable=renewable,
    )
    db.add(entry)
    await db.flush()

    logger.info(
        "Ledger %s %+d points for user %s (entry=%s, expires=%s)",
        kind.value,
        points,
        user_id,
        entry.id,
        entry.expires_at.isoformat(),
    )
    return entry


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_balance(
    db: AsyncSession, *, user_id: uuid.UUID, now: Optional[datetime] = None
) -> int:
    """Effective balance: sum over live entries."""
    now = now or utc_now()
    total = await db.scalar(
        select(func.coalesce(func.sum(LedgerEntry.points), 0)).where(
            LedgerEntry.user_id == user_id, _live_entries(now)
        )
    )
    return int(total or 0)


async def list_expiring_within(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    days: int,
    now: Optional[datetime] = None,
    page_size: int = EXPIRING_PAGE_SIZE,
) -> AsyncIterator[LedgerEntry]:
    """Yield live entries expiring within ``days``, soonest first.

    Pages through plain LIMIT/OFFSET queries; calling again restarts from
    the beginning.
    """
    if days < 0:
        raise ValidationError("days must be zero or positive")
    now = now or utc_now()
    horizon = now + timedelta(days=days)
    query = (
        select(LedgerEntry)
        .where(
            LedgerEntry.user_id == user_id,
            _live_entries(now),
            LedgerEntry.expires_at <= horizon,
        )
        .order_by(LedgerEntry.expires_at.asc(), LedgerEntry.id.asc())
    )

    offset = 0
    while True:
        result = await db.execute(query.offset(offset).limit(page_size))
        batch = result.scalars().all()
        for entry in batch:
            yield entry
        if len(batch) < page_size:
            return
        offset += page_size


async def expiring_total(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    days: int,
    now: Optional[datetime] = None,
) -> int:
    now = now or utc_now()
    total = await db.scalar(
        select(func.coalesce(func.sum(LedgerEntry.points), 0)).where(
            LedgerEntry.user_id == user_id,
            _live_entries(now),
            LedgerEntry.expires_at <= now + timedelta(days=days),
        )
    )
    return int(total or 0)


async def get_history(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[LedgerEntry], int]:
    """Full statement, newest first, with total count."""
    query = select(LedgerEntry).where(LedgerEntry.user_id == user_id)
    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0

    result = await db.execute(
        query.order_by(LedgerEntry.earned_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Expiry / renewal
# ---------------------------------------------------------------------------


async def renew_all(
    db: AsyncSession, *, user_id: uuid.UUID, now: Optional[datetime] = None
) -> int:
    """Push every renewable live entry to ``now + POINTS_EXPIRY_MONTHS``.

    Returns the number of entries renewed. Already-lapsed entries are not
    revived.
    """
    now = now or utc_now()
    new_expiry = add_months(now, get_settings().POINTS_EXPIRY_MONTHS)
    result = await db.execute(
        update(LedgerEntry)
        .where(
            LedgerEntry.user_id == user_id,
            LedgerEntry.renewable.is_(True),
            _live_entries(now),
        )
        .values(expires_at=new_expiry, renewed_at=now)
    )
    renewed = result.rowcount or 0
    if renewed:
        logger.info(
            "Renewed %d ledger entries for user %s until %s",
            renewed,
            user_id,
            new_expiry.isoformat(),
        )
    return renewed


async def expire_due(
    db: AsyncSession,
    *,
    user_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> int:
    """Stamp ``expired`` on entries past their expiry.

    Balances already ignore these entries, so this only tidies the flags.
    """
    now = now or utc_now()
    query = update(LedgerEntry).where(
        LedgerEntry.expired.is_(False), LedgerEntry.expires_at <= now
    )
    if user_id is not None:
        query = query.where(LedgerEntry.user_id == user_id)
    result = await db.execute(query.values(expired=True))
    count = result.rowcount or 0
    logger.info("Marked %d ledger entries expired", count)
    return count


# ---------------------------------------------------------------------------
# Purchases and redemptions
# ---------------------------------------------------------------------------


def points_for_purchase(purchase_value) -> int:
    """One point per ``POINTS_PER_CURRENCY_UNIT`` spent, rounded down."""
    return int(purchase_value // get_settings().POINTS_PER_CURRENCY_UNIT)


async def award_purchase_points(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    purchase_value,
    partner_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> LedgerEntry:
    """Grant purchase points to an active member and renew their renewable points."""
    if purchase_value <= 0:
        raise ValidationError("Purchase value must be positive")
    points = points_for_purchase(purchase_value)
    if points < 1:
        raise ValidationError(
            "Purchase value too low to earn points",
            details={"purchase_value": str(purchase_value)},
        )

    user = await _get_user(db, user_id)
    if user.status != UserStatus.ACTIVE:
        raise PolicyViolation("Only active members earn purchase points")

    now = now or utc_now()
    # Renew existing points first so the new entry is not counted twice
    await renew_all(db, user_id=user_id, now=now)
    return await award_points(
        db,
        user_id=user_id,
        points=points,
        kind=LedgerKind.PURCHASE,
        description=f"Purchase of {purchase_value}",
        metadata={
            "purchase_value": str(purchase_value),
            "partner_id": str(partner_id) if partner_id else None,
        },
        renewable=True,
        earned_at=now,
    )


async def record_redemption(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    points_spent: int,
    redemption_code: Optional[str] = None,
    approved_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LedgerEntry:
    """Deduct points for an approved reward redemption."""
    if points_spent <= 0:
        raise InvalidAmount("Points spent must be positive")
    await _get_user(db, user_id)

    now = now or utc_now()
    balance = await get_balance(db, user_id=user_id, now=now)
    if balance < points_spent:
        raise InsufficientPoints(
            f"Balance of {balance} points is below the {points_spent} required",
            details={"balance": balance, "required": points_spent},
        )

    return await award_points(
        db,
        user_id=user_id,
        points=-points_spent,
        kind=LedgerKind.REDEMPTION,
        description=f"Redemption {redemption_code}" if redemption_code else "Redemption",
        metadata={"redemption_code": redemption_code, "approved_by": approved_by},
        earned_at=now,
    )
