"""Enums for the Loyalty Service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class UserType(str, enum.Enum):
    CLIENT = "client"
    PARTNER = "partner"
    AMBASSADOR = "ambassador"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class ReferralLevel(str, enum.Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    DIAMOND = "diamond"


class LedgerKind(str, enum.Enum):
    PURCHASE = "purchase"
    REFERRAL = "referral"
    BONUS = "bonus"
    REDEMPTION = "redemption"


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    CONVERTED = "converted"


class CommissionValueType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class AppliesTo(str, enum.Enum):
    ALL = "all"
    PARTNER = "partner"
    AMBASSADOR = "ambassador"
    CUSTOM = "custom"


class CommissionType(str, enum.Enum):
    FIRST = "first"
    RECURRING = "recurring"


class CommissionStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class PayoutStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentEvent(str, enum.Enum):
    """Gateway webhook event names (stored upper-case by the gateway)."""

    PAYMENT_CREATED = "PAYMENT_CREATED"
    PAYMENT_UPDATED = "PAYMENT_UPDATED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    PAYMENT_OVERDUE = "PAYMENT_OVERDUE"
    PAYMENT_DELETED = "PAYMENT_DELETED"
    PAYMENT_REFUNDED = "PAYMENT_REFUNDED"


# Gateway payment statuses (lowercased) that count as money received
CONFIRMED_PAYMENT_STATUSES = frozenset({"received", "confirmed", "received_in_cash"})

ACTIVATING_EVENTS = frozenset(
    {PaymentEvent.PAYMENT_RECEIVED.value, PaymentEvent.PAYMENT_CONFIRMED.value}
)
