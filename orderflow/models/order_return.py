from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class ReturnType(str, Enum):
    UNSOLD_RETURN = "unsold_return"
    QUALITY_ISSUE = "quality_issue"
    WRONG_ITEM = "wrong_item"
    CUSTOMER_REQUEST = "customer_request"
    DAMAGED = "damaged"


class ItemCondition(str, Enum):
    GOOD = "good"
    DAMAGED = "damaged"
    EXPIRED = "expired"
    UNSELLABLE = "unsellable"


class OrderReturn(Base):
    """A return recorded against a delivered order. Immutable once recorded.

    ``credit_applied_at`` stays null while the credit is pending; settlement
    stamps it when the credit is deducted from the order's payment record.
    """

    __tablename__ = "order_returns"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(
        UUIDType, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    client_id = Column(
        UUIDType, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    return_type = Column(String(30), nullable=False)
    total_credit = Column(Numeric(12, 4), nullable=False, default=0)
    processed_by = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    credit_applied_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class ReturnLineItem(Base):
    __tablename__ = "return_line_items"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    return_id = Column(
        UUIDType, ForeignKey("order_returns.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    product_name = Column(String(255), nullable=False)
    quantity_returned = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 4), nullable=False)
    credit_amount = Column(Numeric(12, 4), nullable=False)
    condition = Column(String(20), nullable=False, default=ItemCondition.GOOD.value)
    restockable = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
