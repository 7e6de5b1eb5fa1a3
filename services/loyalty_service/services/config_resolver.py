"""Commission policy resolution.

A referrer's policy for a given date is the first hit from, in order:

1. a policy bound to the referrer (``user_commission_config``)
2. a policy for the referrer's user type (``applies_to`` = type)
3. the universal policy (``applies_to`` = all)

Each tier only considers active policies whose validity window contains
the date; ties go to the most recently created policy. Resolution is a
pure read.
"""

import enum
import uuid
from datetime import date, datetime
from typing import Awaitable, Callable, Optional, Union

from libs.common.logging import get_logger
from services.loyalty_service.models import (
    AppliesTo,
    CommissionConfig,
    User,
    UserCommissionConfig,
)
from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

logger = get_logger(__name__)

Strategy = Callable[[AsyncSession, User, date], Awaitable[Optional[CommissionConfig]]]


class ResolutionTier(str, enum.Enum):
    USER_SPECIFIC = "user_specific"
    TYPE_SPECIFIC = "type_specific"
    UNIVERSAL = "universal"


def _applicable_on(on_date: date) -> ColumnElement[bool]:
    return and_(
        CommissionConfig.active.is_(True),
        or_(CommissionConfig.valid_from.is_(None), CommissionConfig.valid_from <= on_date),
        or_(CommissionConfig.valid_until.is_(None), CommissionConfig.valid_until >= on_date),
    )


async def _first(db: AsyncSession, query: Select) -> Optional[CommissionConfig]:
    return await db.scalar(
        query.order_by(CommissionConfig.created_at.desc()).limit(1)
    )


async def user_specific(
    db: AsyncSession, referrer: User, on_date: date
) -> Optional[CommissionConfig]:
    return await _first(
        db,
        select(CommissionConfig)
        .join(
            UserCommissionConfig,
            UserCommissionConfig.commission_config_id == CommissionConfig.id,
        )
        .where(UserCommissionConfig.user_id == referrer.id, _applicable_on(on_date)),
    )


async def type_specific(
    db: AsyncSession, referrer: User, on_date: date
) -> Optional[CommissionConfig]:
    try:
        applies_to = AppliesTo(referrer.user_type.value)
    except ValueError:
        # No type-wide policies exist for this user type
        return None
    if applies_to in (AppliesTo.ALL, AppliesTo.CUSTOM):
        return None
    return await _first(
        db,
        select(CommissionConfig).where(
            CommissionConfig.applies_to == applies_to, _applicable_on(on_date)
        ),
    )


async def universal(
    db: AsyncSession, referrer: User, on_date: date
) -> Optional[CommissionConfig]:
    return await _first(
        db,
        select(CommissionConfig).where(
            CommissionConfig.applies_to == AppliesTo.ALL, _applicable_on(on_date)
        ),
    )


RESOLUTION_ORDER: tuple[tuple[ResolutionTier, Strategy], ...] = (
    (ResolutionTier.USER_SPECIFIC, user_specific),
    (ResolutionTier.TYPE_SPECIFIC, type_specific),
    (ResolutionTier.UNIVERSAL, universal),
)


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


async def resolve_with_tier(
    db: AsyncSession,
    *,
    referrer_id: uuid.UUID,
    on_date: Union[date, datetime],
) -> tuple[Optional[ResolutionTier], Optional[CommissionConfig]]:
    referrer = await db.get(User, referrer_id)
    if not referrer:
        return None, None

    day = _as_date(on_date)
    for tier, strategy in RESOLUTION_ORDER:
        config = await strategy(db, referrer, day)
        if config is not None:
            logger.debug(
                "Resolved commission config %s for %s via %s",
                config.id,
                referrer_id,
                tier.value,
            )
            return tier, config
    return None, None


async def resolve_commission_config(
    db: AsyncSession,
    *,
    referrer_id: uuid.UUID,
    on_date: Union[date, datetime],
) -> Optional[CommissionConfig]:
    """Return the applicable policy, or None when no commission is owed."""
    _, config = await resolve_with_tier(db, referrer_id=referrer_id, on_date=on_date)
    return config
