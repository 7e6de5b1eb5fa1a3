"""Referral lifecycle: registration link, activation and conversion."""

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.errors import ConflictError, NotFoundError
from libs.common.logging import get_logger
from services.loyalty_service.models import (
    LedgerEntry,
    LedgerKind,
    Referral,
    ReferralLevel,
    ReferralStatus,
    User,
    UserStatus,
    UserType,
)
from services.loyalty_service.services.ledger_ops import award_points
from services.loyalty_service.services.referral_levels import (
    level_for,
    next_level,
    points_per_referral,
    referrals_to_next_level,
)
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

REFERRAL_CODE_ATTEMPTS = 5


@dataclass
class ConversionResult:
    referral: Referral
    referrer_points: int
    referred_points: int
    level_before: ReferralLevel
    level_after: ReferralLevel


@dataclass
class ActivationResult:
    user: User
    activated: bool
    conversion: Optional[ConversionResult] = None


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def create_member(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    user_type: UserType = UserType.CLIENT,
    referral_code: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
) -> User:
    """Create a member, linking them to a referrer when a code is given.

    The referral starts pending and converts on first activation.
    """
    existing = await db.scalar(select(User.id).where(User.email == email))
    if existing:
        raise ConflictError(f"A member with email {email} already exists")

    referrer: Optional[User] = None
    if referral_code:
        referrer = await db.scalar(
            select(User).where(User.referral_code == referral_code.strip().upper())
        )
        if not referrer:
            raise NotFoundError("Referral code not found")

    user = User(
        id=user_id or uuid.uuid4(),
        name=name,
        email=email,
        user_type=user_type,
        status=UserStatus.INACTIVE,
        level=ReferralLevel.BRONZE,
        total_referrals=0,
        referred_by=referrer.id if referrer else None,
    )
    db.add(user)
    await db.flush()

    if referrer:
        db.add(Referral(referrer_id=referrer.id, referred_id=user.id))
        await db.flush()
        logger.info("Member %s registered with referrer %s", user.id, referrer.id)

    return user


def _generate_code(name: str) -> str:
    prefix = "".join(ch for ch in name.split(" ")[0].upper() if ch.isalnum())[:6]
    return f"{prefix or 'CLUBE'}{secrets.token_hex(3).upper()}"


async def ensure_referral_code(db: AsyncSession, *, user_id: uuid.UUID) -> str:
    """Return the member's referral code, generating a unique one on first use."""
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    if user.referral_code:
        return user.referral_code

    for _ in range(REFERRAL_CODE_ATTEMPTS):
        candidate = _generate_code(user.name)
        taken = await db.scalar(select(User.id).where(User.referral_code == candidate))
        if not taken:
            user.referral_code = candidate
            await db.flush()
            return candidate
    raise ConflictError("Could not allocate a unique referral code")


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


async def convert_referral(
    db: AsyncSession,
    *,
    referral: Referral,
    converted_at: Optional[datetime] = None,
) -> Optional[ConversionResult]:
    """Convert a pending referral exactly once.

    Bumps the referrer's counter, recomputes their level and grants points
    to both sides. Returns None when the referral was already converted.
    """
    converted_at = converted_at or utc_now()

    # Guarded transition: only one caller can move pending -> converted
    claimed = await db.execute(
        update(Referral)
        .where(Referral.id == referral.id, Referral.status == ReferralStatus.PENDING)
        .values(status=ReferralStatus.CONVERTED, conversion_date=converted_at)
    )
    if not claimed.rowcount:
        logger.info("Referral %s already converted, skipping", referral.id)
        return None

    referrer = await db.scalar(
        select(User).where(User.id == referral.referrer_id).with_for_update()
    )
    if not referrer:
        raise NotFoundError(f"Referrer {referral.referrer_id} not found")

    level_before = referrer.level
    referrer_points = points_per_referral(level_before)
    referrer.total_referrals += 1
    referrer.level = level_for(referrer.total_referrals)
    await db.flush()

    settings = get_settings()
    await award_points(
        db,
        user_id=referrer.id,
        points=referrer_points,
        kind=LedgerKind.REFERRAL,
        description="Referral converted",
        metadata={"referral_id": str(referral.id), "referred_id": str(referral.referred_id)},
        renewable=True,
        earned_at=converted_at,
    )
    referred_points = settings.REFERRED_BONUS_POINTS
    if referred_points > 0:
        await award_points(
            db,
            user_id=referral.referred_id,
            points=referred_points,
            kind=LedgerKind.BONUS,
            description="Welcome bonus for joining by referral",
            metadata={"referral_id": str(referral.id)},
            earned_at=converted_at,
        )

    referral.points_awarded = referrer_points
    await db.flush()

    if referrer.level != level_before:
        logger.info(
            "Referrer %s moved from %s to %s",
            referrer.id,
            level_before.value,
            referrer.level.value,
        )
    logger.info(
        "Referral %s converted (referrer=%s total=%d points=%d)",
        referral.id,
        referrer.id,
        referrer.total_referrals,
        referrer_points,
    )
    return ConversionResult(
        referral=referral,
        referrer_points=referrer_points,
        referred_points=referred_points,
        level_before=level_before,
        level_after=referrer.level,
    )


async def activate_member(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    activated_at: Optional[datetime] = None,
) -> ActivationResult:
    """Mark a member active and run their pending referral conversion.

    Status moves only when the member is not already active, so repeated
    payment notifications do not re-run side effects.
    """
    activated_at = activated_at or utc_now()
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")

    changed = await db.execute(
        update(User)
        .where(User.id == user_id, User.status != UserStatus.ACTIVE)
        .values(status=UserStatus.ACTIVE, last_payment_at=activated_at)
    )
    if not changed.rowcount:
        user.last_payment_at = activated_at
        await db.flush()
        return ActivationResult(user=user, activated=False)

    logger.info("Member %s activated", user_id)
    conversion = None
    referral = await db.scalar(
        select(Referral).where(
            Referral.referred_id == user_id,
            Referral.status == ReferralStatus.PENDING,
        )
    )
    if referral:
        conversion = await convert_referral(
            db, referral=referral, converted_at=activated_at
        )
    return ActivationResult(user=user, activated=True, conversion=conversion)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


async def get_referral_stats(db: AsyncSession, *, user_id: uuid.UUID) -> dict:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")

    counts = dict(
        (
            await db.execute(
                select(Referral.status, func.count())
                .where(Referral.referrer_id == user_id)
                .group_by(Referral.status)
            )
        ).all()
    )
    points_earned = await db.scalar(
        select(func.coalesce(func.sum(LedgerEntry.points), 0)).where(
            LedgerEntry.user_id == user_id, LedgerEntry.kind == LedgerKind.REFERRAL
        )
    )
    upcoming = next_level(user.level)
    return {
        "user_id": user.id,
        "referral_code": user.referral_code,
        "level": user.level,
        "total_referrals": user.total_referrals,
        "pending_referrals": counts.get(ReferralStatus.PENDING, 0),
        "converted_referrals": counts.get(ReferralStatus.CONVERTED, 0),
        "points_from_referrals": int(points_earned or 0),
        "points_per_referral": points_per_referral(user.level),
        "next_level": upcoming,
        "referrals_to_next_level": referrals_to_next_level(user.total_referrals),
    }
