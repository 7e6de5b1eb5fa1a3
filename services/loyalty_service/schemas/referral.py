"""Referral request/response schemas."""

import uuid
from typing import Optional

from pydantic import BaseModel
from services.loyalty_service.models.enums import ReferralLevel


class ReferralCodeResponse(BaseModel):
    user_id: uuid.UUID
    referral_code: str


class ReferralStatsResponse(BaseModel):
    user_id: uuid.UUID
    referral_code: Optional[str] = None
    level: ReferralLevel
    total_referrals: int
    pending_referrals: int
    converted_referrals: int
    points_from_referrals: int
    points_per_referral: int
    next_level: Optional[ReferralLevel] = None
    referrals_to_next_level: int


class ActivationResponse(BaseModel):
    user_id: uuid.UUID
    activated: bool
    referral_converted: bool
    referrer_points: Optional[int] = None
    referred_points: Optional[int] = None
