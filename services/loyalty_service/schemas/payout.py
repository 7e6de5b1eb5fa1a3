"""Payout request schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.loyalty_service.models.enums import PayoutStatus


class PayoutRequestResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    request_amount: Decimal
    payout_method: Optional[dict[str, Any]] = None
    status: PayoutStatus
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PayoutListResponse(BaseModel):
    items: list[PayoutRequestResponse]
    total: int
    skip: int
    limit: int


class PayoutRejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)
