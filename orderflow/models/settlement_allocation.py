"""SettlementAllocation model for tracking what a settlement did to each order."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric, String

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class AllocationType(str, Enum):
    PAYMENT = "payment"
    RETURN_CREDIT = "return_credit"
    DEBT = "debt"


class SettlementAllocation(Base):
    """Each record is one effect of a settlement session on one order."""

    __tablename__ = "settlement_allocations"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    settlement_id = Column(
        UUIDType,
        ForeignKey("settlement_sessions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    order_id = Column(
        UUIDType, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    allocation_type = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 4), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (Index("ix_settlement_allocations_order_type", "order_id", "allocation_type"),)
