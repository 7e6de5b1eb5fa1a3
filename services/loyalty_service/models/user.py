"""Program member model."""

import uuid
from datetime import datetime
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime, UUIDType
from services.loyalty_service.models.enums import (
    ReferralLevel,
    UserStatus,
    UserType,
    enum_values,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates


class User(Base):
    """A program member. Never hard-deleted; deactivate or block instead."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    user_type: Mapped[UserType] = mapped_column(
        SAEnum(
            UserType,
            name="user_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=UserType.CLIENT,
        nullable=False,
    )
    status: Mapped[UserStatus] = mapped_column(
        SAEnum(
            UserStatus,
            name="user_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=UserStatus.INACTIVE,
        nullable=False,
    )
    level: Mapped[ReferralLevel] = mapped_column(
        SAEnum(
            ReferralLevel,
            name="referral_level_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ReferralLevel.BRONZE,
        nullable=False,
    )
    total_referrals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    referred_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    referral_code: Mapped[Optional[str]] = mapped_column(
        String(32), unique=True, nullable=True
    )
    payout_info: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONType, nullable=True
    )
    last_payment_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )

    @validates("referred_by")
    def _referrer_is_immutable(self, key, value):
        current = self.__dict__.get("referred_by")
        if current is not None and value != current:
            raise ValueError("referred_by cannot be changed once set")
        return value

    def __repr__(self) -> str:
        return f"<User {self.email} {self.level.value if self.level else None}>"
