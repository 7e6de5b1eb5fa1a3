"""Referral relationship model."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import UTCDateTime, UUIDType
from services.loyalty_service.models.enums import ReferralStatus, enum_values
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column


class Referral(Base):
    """Tracks referral lifecycle (pending -> converted, exactly once)."""

    __tablename__ = "referrals"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    referrer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False
    )
    # A user can be referred at most once
    referred_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False
    )
    status: Mapped[ReferralStatus] = mapped_column(
        SAEnum(
            ReferralStatus,
            name="referral_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ReferralStatus.PENDING,
        nullable=False,
    )
    conversion_date: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    points_awarded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Referral {self.referrer_id} -> {self.referred_id} {self.status.value}>"
