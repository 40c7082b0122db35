from decimal import Decimal
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    OVERPAID = "overpaid"
    WAIVED = "waived"


class OrderPaymentRecord(Base):
    """Per-order view of what is owed and what has been paid.

    ``order_total`` is the adjusted total: the order's delivered value minus
    return credit already applied against it.
    """

    __tablename__ = "order_payment_records"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(
        UUIDType,
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True,
    )
    client_id = Column(
        UUIDType, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    order_total = Column(Numeric(12, 4), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 4), nullable=False, default=0)
    returns_credit = Column(Numeric(12, 4), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)

    payment_method = Column(String(50), nullable=True)
    payment_reference = Column(String(255), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    @property
    def amount_remaining(self) -> Decimal:
        remaining = Decimal(str(self.order_total)) - Decimal(str(self.amount_paid))
        return max(Decimal("0"), remaining)
