"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    user = UserFactory.create(status=UserStatus.ACTIVE)
    db_session.add(user)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


# ---------------------------------------------------------------------------
# Loyalty Service
# ---------------------------------------------------------------------------


class UserFactory:
    @staticmethod
    def create(**overrides):
        from services.loyalty_service.models import (
            ReferralLevel,
            User,
            UserStatus,
            UserType,
        )

        defaults = {
            "id": _uuid(),
            "name": "Test Member",
            "email": _unique_email(),
            "user_type": UserType.CLIENT,
            "status": UserStatus.ACTIVE,
            "level": ReferralLevel.BRONZE,
            "total_referrals": 0,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return User(**defaults)


class ReferralFactory:
    @staticmethod
    def create(**overrides):
        from services.loyalty_service.models import Referral, ReferralStatus

        defaults = {
            "id": _uuid(),
            "status": ReferralStatus.PENDING,
            "points_awarded": 0,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Referral(**defaults)


class CommissionConfigFactory:
    @staticmethod
    def create(**overrides):
        from services.loyalty_service.models import (
            AppliesTo,
            CommissionConfig,
            CommissionValueType,
        )

        defaults = {
            "id": _uuid(),
            "name": "Default programme",
            "first_payment_type": CommissionValueType.FIXED,
            "first_payment_value": Decimal("20.00"),
            "recurring_payment_type": CommissionValueType.PERCENTAGE,
            "recurring_payment_value": Decimal("10.00"),
            "recurring_limit": 12,
            "applies_to": AppliesTo.ALL,
            "active": True,
            "min_payout_amount": Decimal("50.00"),
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return CommissionConfig(**defaults)


class GatewayPaymentFactory:
    @staticmethod
    def create(**overrides):
        from services.loyalty_service.models import GatewayPayment

        defaults = {
            "id": _uuid(),
            "gateway_payment_id": f"pay_{uuid.uuid4().hex[:12]}",
            "value": Decimal("49.90"),
            "status": "pending",
            "billing_type": "PIX",
            "created_at": _now(),
        }
        defaults.update(overrides)
        return GatewayPayment(**defaults)


class LedgerEntryFactory:
    @staticmethod
    def create(**overrides):
        from services.loyalty_service.models import LedgerEntry, LedgerKind

        earned = overrides.pop("earned_at", _now())
        defaults = {
            "id": _uuid(),
            "points": 100,
            "kind": LedgerKind.PURCHASE,
            "earned_at": earned,
            "expires_at": earned + timedelta(days=365),
            "renewable": False,
            "expired": False,
            "redeemed": False,
        }
        defaults.update(overrides)
        return LedgerEntry(**defaults)


class CommissionFactory:
    @staticmethod
    def create(**overrides):
        from services.loyalty_service.models import (
            Commission,
            CommissionStatus,
            CommissionType,
        )

        defaults = {
            "id": _uuid(),
            "value": Decimal("20.00"),
            "commission_type": CommissionType.FIRST,
            "status": CommissionStatus.PENDING,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Commission(**defaults)
