"""Loyalty Service schemas package.

Re-exports all schemas so routers import from one place.

IMPORTANT: Every schema class must be listed here.
"""

from services.loyalty_service.schemas.commission import (  # noqa: F401
    AssignConfigRequest,
    CommissionConfigCreate,
    CommissionConfigResponse,
    CommissionConfigUpdate,
    CommissionResponse,
    CommissionSummaryResponse,
    UserConfigResponse,
)
from services.loyalty_service.schemas.payout import (  # noqa: F401
    PayoutListResponse,
    PayoutRejectRequest,
    PayoutRequestResponse,
)
from services.loyalty_service.schemas.points import (  # noqa: F401
    BalanceResponse,
    ExpireResponse,
    ExpiringResponse,
    HistoryResponse,
    LedgerEntryResponse,
    PurchaseRequest,
    RedemptionRequest,
    RenewResponse,
)
from services.loyalty_service.schemas.referral import (  # noqa: F401
    ActivationResponse,
    ReferralCodeResponse,
    ReferralStatsResponse,
)
from services.loyalty_service.schemas.webhook import WebhookAck  # noqa: F401

__all__ = [
    "ActivationResponse",
    "AssignConfigRequest",
    "BalanceResponse",
    "CommissionConfigCreate",
    "CommissionConfigResponse",
    "CommissionConfigUpdate",
    "CommissionResponse",
    "CommissionSummaryResponse",
    "ExpireResponse",
    "ExpiringResponse",
    "HistoryResponse",
    "LedgerEntryResponse",
    "PayoutListResponse",
    "PayoutRejectRequest",
    "PayoutRequestResponse",
    "PurchaseRequest",
    "RedemptionRequest",
    "ReferralCodeResponse",
    "ReferralStatsResponse",
    "UserConfigResponse",
    "WebhookAck",
]
