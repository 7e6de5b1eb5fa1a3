"""Commission policy and commission schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from services.loyalty_service.models.enums import (
    AppliesTo,
    CommissionStatus,
    CommissionType,
    CommissionValueType,
)


class CommissionConfigBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    first_payment_type: CommissionValueType
    first_payment_value: Decimal = Field(..., ge=0, decimal_places=2)
    recurring_payment_type: CommissionValueType
    recurring_payment_value: Decimal = Field(..., ge=0, decimal_places=2)
    recurring_limit: Optional[int] = Field(None, ge=0)
    applies_to: AppliesTo = AppliesTo.ALL
    active: bool = True
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    min_payout_amount: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)


class CommissionConfigCreate(CommissionConfigBase):
    @model_validator(mode="after")
    def _check_percentages(self):
        for kind in ("first_payment", "recurring_payment"):
            if (
                getattr(self, f"{kind}_type") == CommissionValueType.PERCENTAGE
                and getattr(self, f"{kind}_value") > 100
            ):
                raise ValueError(f"{kind}_value cannot exceed 100 percent")
        return self


class CommissionConfigUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    first_payment_type: Optional[CommissionValueType] = None
    first_payment_value: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    recurring_payment_type: Optional[CommissionValueType] = None
    recurring_payment_value: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    recurring_limit: Optional[int] = Field(None, ge=0)
    applies_to: Optional[AppliesTo] = None
    active: Optional[bool] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    min_payout_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class CommissionConfigResponse(CommissionConfigBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssignConfigRequest(BaseModel):
    commission_config_id: uuid.UUID


class UserConfigResponse(BaseModel):
    user_id: uuid.UUID
    commission_config_id: uuid.UUID
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommissionResponse(BaseModel):
    id: uuid.UUID
    referrer_id: uuid.UUID
    referred_id: uuid.UUID
    payment_id: uuid.UUID
    config_id: uuid.UUID
    value: Decimal
    commission_type: CommissionType
    status: CommissionStatus
    payout_request_id: Optional[uuid.UUID] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommissionSummaryResponse(BaseModel):
    user_id: uuid.UUID
    commission_count: int
    total: Decimal
    total_first: Decimal
    total_recurring: Decimal
    pending_available: Decimal
    pending_in_payout: Decimal
    paid: Decimal
    referrals: int
    min_payout_amount: Optional[Decimal] = None
    can_request_payout: bool
