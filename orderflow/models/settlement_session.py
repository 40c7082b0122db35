from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String, Text

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class SettlementStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    PARTIAL = "partial"
    NO_PAYMENT = "no_payment"
    FAILED = "failed"


class SettlementType(str, Enum):
    ORDER_DELIVERY = "order_delivery"
    DEBT_COLLECTION = "debt_collection"
    ROUTINE_COLLECTION = "routine_collection"


class PaymentType(str, Enum):
    FULL_PAYMENT = "full_payment"
    PARTIAL_PAYMENT = "partial_payment"
    NO_PAYMENT = "no_payment"
    DEBT_ONLY = "debt_only"


class SettlementSession(Base):
    """One settlement action for a client.

    Created once; only ``settlement_status`` may be corrected afterwards.
    """

    __tablename__ = "settlement_sessions"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    client_id = Column(
        UUIDType, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    origin_order_id = Column(
        UUIDType, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    driver_id = Column(String(255), nullable=True)
    settlement_type = Column(
        String(30), nullable=False, default=SettlementType.ROUTINE_COLLECTION.value
    )
    payment_type = Column(String(30), nullable=False, default=PaymentType.FULL_PAYMENT.value)

    # Order ids (as strings) considered collectible when the session was created
    orders_to_collect = Column(JSON, nullable=False, default=list)
    total_collectible = Column(Numeric(12, 4), nullable=False, default=0)
    amount_collected = Column(Numeric(12, 4), nullable=False, default=0)
    credit_amount = Column(Numeric(12, 4), nullable=False, default=0)

    payment_method = Column(String(50), nullable=False)
    payment_reference = Column(String(255), nullable=True)
    settlement_status = Column(String(20), nullable=False, default=SettlementStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    recorded_by = Column(String(255), nullable=True)

    settlement_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
