"""Payment model with its embedded refund record."""

import random
import time
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.commerce_service.models.enums import (
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Payment(Base):
    """Payments against an order. At most one active payment per order."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    transaction_id: Mapped[str] = mapped_column(
        String(40), unique=True, index=True, nullable=False
    )

    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="payment_method_enum",
        ),
        nullable=False,
    )
    payment_gateway: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True
    )  # razorpay, stripe, cash, ...

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), default="INR", server_default="INR", nullable=False
    )

    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            values_callable=enum_values,
            name="payment_status_enum",
        ),
        default=PaymentStatus.PENDING,
        server_default=PaymentStatus.PENDING.value,
        nullable=False,
    )
    payment_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    gateway_response: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    # Refund sub-record
    refund_status: Mapped[RefundStatus] = mapped_column(
        SAEnum(
            RefundStatus,
            values_callable=enum_values,
            name="refund_status_enum",
        ),
        default=RefundStatus.NONE,
        server_default=RefundStatus.NONE.value,
        nullable=False,
    )
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    refund_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_reference: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )  # Gateway refund id
    refund_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="non_negative_amount"),
        CheckConstraint(
            "refund_amount IS NULL OR refund_amount <= amount",
            name="refund_within_amount",
        ),
    )

    # Relationships
    order = relationship("Order")

    @staticmethod
    def generate_transaction_id() -> str:
        """Generate a transaction id like TXN17672256000000042."""
        return f"TXN{int(time.time() * 1000)}{random.randint(0, 9999):04d}"

    def __repr__(self):
        return f"<Payment {self.transaction_id} {self.status}>"
