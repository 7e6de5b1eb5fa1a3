"""Points ledger model."""

import uuid
from datetime import datetime
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import JSONType, UTCDateTime, UUIDType
from services.loyalty_service.models.enums import LedgerKind, enum_values
from sqlalchemy import Boolean, CheckConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column


class LedgerEntry(Base):
    """Append-only grant (positive) or deduction (negative) of points.

    Only the expiry fields change after insert: ``expires_at``/``renewed_at``
    on renewal and ``expired`` when due entries are stamped.
    """

    __tablename__ = "points_ledger"
    __table_args__ = (
        CheckConstraint("points <> 0", name="points_non_zero"),
        Index("ix_points_ledger_user_expiry", "user_id", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[LedgerKind] = mapped_column(
        SAEnum(
            LedgerKind,
            name="ledger_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # "metadata" is reserved on declarative classes
    entry_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSONType, nullable=True
    )
    earned_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    renewable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expired: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    redeemed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    renewed_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.user_id} {self.points:+d} {self.kind.value}>"
