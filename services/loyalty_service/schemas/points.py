"""Points ledger request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.loyalty_service.models.enums import LedgerKind


class LedgerEntryResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    points: int
    kind: LedgerKind
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="entry_metadata")
    earned_at: datetime
    expires_at: datetime
    renewable: bool
    expired: bool
    redeemed: bool
    renewed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    user_id: uuid.UUID
    balance: int


class HistoryResponse(BaseModel):
    entries: list[LedgerEntryResponse]
    total: int
    skip: int
    limit: int


class ExpiringResponse(BaseModel):
    user_id: uuid.UUID
    days: int
    total_points: int
    entries: list[LedgerEntryResponse]


class RenewResponse(BaseModel):
    user_id: uuid.UUID
    renewed: int


class ExpireResponse(BaseModel):
    expired: int


class PurchaseRequest(BaseModel):
    """Partner-reported purchase that earns points."""

    purchase_value: Decimal = Field(..., gt=0, decimal_places=2)
    partner_id: Optional[uuid.UUID] = None


class RedemptionRequest(BaseModel):
    """Approved reward redemption to deduct."""

    points_spent: int = Field(..., gt=0)
    redemption_code: Optional[str] = Field(None, max_length=64)
