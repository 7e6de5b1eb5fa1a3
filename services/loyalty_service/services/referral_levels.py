"""Referral tiers.

Levels are a pure function of a member's lifetime converted referrals.
"""

from typing import Optional

from services.loyalty_service.models import ReferralLevel

# (level, minimum total_referrals), highest first
LEVEL_THRESHOLDS: tuple[tuple[ReferralLevel, int], ...] = (
    (ReferralLevel.DIAMOND, 31),
    (ReferralLevel.GOLD, 16),
    (ReferralLevel.SILVER, 6),
    (ReferralLevel.BRONZE, 0),
)

POINTS_PER_REFERRAL: dict[ReferralLevel, int] = {
    ReferralLevel.BRONZE: 200,
    ReferralLevel.SILVER: 250,
    ReferralLevel.GOLD: 300,
    ReferralLevel.DIAMOND: 400,
}

LEVEL_ORDER: tuple[ReferralLevel, ...] = (
    ReferralLevel.BRONZE,
    ReferralLevel.SILVER,
    ReferralLevel.GOLD,
    ReferralLevel.DIAMOND,
)


def level_for(total_referrals: int) -> ReferralLevel:
    if total_referrals < 0:
        raise ValueError("total_referrals cannot be negative")
    for level, minimum in LEVEL_THRESHOLDS:
        if total_referrals >= minimum:
            return level
    return ReferralLevel.BRONZE


def points_per_referral(level: ReferralLevel) -> int:
    return POINTS_PER_REFERRAL[level]


def next_level(level: ReferralLevel) -> Optional[ReferralLevel]:
    index = LEVEL_ORDER.index(level)
    if index + 1 < len(LEVEL_ORDER):
        return LEVEL_ORDER[index + 1]
    return None


def threshold_for(level: ReferralLevel) -> int:
    return dict(LEVEL_THRESHOLDS)[level]


def referrals_to_next_level(total_referrals: int) -> int:
    """Conversions still needed to reach the next tier (0 at the top)."""
    upcoming = next_level(level_for(total_referrals))
    if upcoming is None:
        return 0
    return threshold_for(upcoming) - total_referrals
