"""Gateway payment mirror.

Rows are created by the billing integration when a charge is issued; the
loyalty core only updates status fields from webhooks and reads history.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import UTCDateTime, UUIDType
from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column


class GatewayPayment(Base):
    __tablename__ = "asaas_payments"
    __table_args__ = (
        Index("ix_asaas_payments_user_status_date", "user_id", "status", "payment_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    gateway_payment_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    # Gateway status, lowercased (pending, received, confirmed, overdue, ...)
    status: Mapped[str] = mapped_column(String(32), default="pending", nullable=False)
    billing_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    installment_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    payment_date: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    webhook_received_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<GatewayPayment {self.gateway_payment_id} {self.status}>"
