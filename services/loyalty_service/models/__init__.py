"""Loyalty Service models package.

Re-exports all models and enums so that:
  - ``from services.loyalty_service.models import User`` works
  - Alembic env.py and test fixtures register every table on import

IMPORTANT: Every model class AND enum must be listed here.
"""

from services.loyalty_service.models.commission import (  # noqa: F401
    Commission,
    CommissionConfig,
    UserCommissionConfig,
)
from services.loyalty_service.models.enums import (  # noqa: F401
    ACTIVATING_EVENTS,
    CONFIRMED_PAYMENT_STATUSES,
    AppliesTo,
    CommissionStatus,
    CommissionType,
    CommissionValueType,
    LedgerKind,
    PaymentEvent,
    PayoutStatus,
    ReferralLevel,
    ReferralStatus,
    UserStatus,
    UserType,
)
from services.loyalty_service.models.ledger import LedgerEntry  # noqa: F401
from services.loyalty_service.models.payment import GatewayPayment  # noqa: F401
from services.loyalty_service.models.payout import PayoutRequest  # noqa: F401
from services.loyalty_service.models.referral import Referral  # noqa: F401
from services.loyalty_service.models.user import User  # noqa: F401

__all__ = [
    # Models
    "Commission",
    "CommissionConfig",
    "GatewayPayment",
    "LedgerEntry",
    "PayoutRequest",
    "Referral",
    "User",
    "UserCommissionConfig",
    # Enums
    "ACTIVATING_EVENTS",
    "CONFIRMED_PAYMENT_STATUSES",
    "AppliesTo",
    "CommissionStatus",
    "CommissionType",
    "CommissionValueType",
    "LedgerKind",
    "PaymentEvent",
    "PayoutStatus",
    "ReferralLevel",
    "ReferralStatus",
    "UserStatus",
    "UserType",
]
