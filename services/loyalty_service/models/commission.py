"""Commission policy and commission record models."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import UTCDateTime, UUIDType
from services.loyalty_service.models.enums import (
    AppliesTo,
    CommissionStatus,
    CommissionType,
    CommissionValueType,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, Date
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column


# Shared by both value-type columns so PostgreSQL creates the type once
COMMISSION_VALUE_TYPE = SAEnum(
    CommissionValueType,
    name="commission_value_type_enum",
    values_callable=enum_values,
    validate_strings=True,
)


class CommissionConfig(Base):
    """A commission policy: how much a referrer earns per referred payment."""

    __tablename__ = "commission_configs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    first_payment_type: Mapped[CommissionValueType] = mapped_column(
        COMMISSION_VALUE_TYPE, nullable=False
    )
    first_payment_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False
    )
    recurring_payment_type: Mapped[CommissionValueType] = mapped_column(
        COMMISSION_VALUE_TYPE, nullable=False
    )
    recurring_payment_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False
    )
    recurring_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    applies_to: Mapped[AppliesTo] = mapped_column(
        SAEnum(
            AppliesTo,
            name="commission_applies_to_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=AppliesTo.ALL,
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    valid_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    min_payout_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<CommissionConfig {self.name} {self.applies_to.value}>"


class UserCommissionConfig(Base):
    """Binds one specific policy to one referrer (overrides type/universal)."""

    __tablename__ = "user_commission_config"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False
    )
    commission_config_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("commission_configs.id"), nullable=False
    )
    assigned_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )


class Commission(Base):
    """Money owed to a referrer for one referred payment.

    ``payment_id`` is unique: at most one commission per payment.
    """

    __tablename__ = "commissions"
    __table_args__ = (CheckConstraint("value >= 0", name="value_non_negative"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    referrer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False
    )
    referred_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False
    )
    payment_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("asaas_payments.id"),
        unique=True,
        nullable=False,
    )
    config_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("commission_configs.id"), nullable=False
    )
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_type: Mapped[CommissionType] = mapped_column(
        SAEnum(
            CommissionType,
            name="commission_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    status: Mapped[CommissionStatus] = mapped_column(
        SAEnum(
            CommissionStatus,
            name="commission_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=CommissionStatus.PENDING,
        nullable=False,
    )
    payout_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("payout_requests.id"),
        index=True,
        nullable=True,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Commission {self.payment_id} {self.value} {self.commission_type.value}>"
