from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class WorkflowStage(str, Enum):
    ORDER_PLACED = "order_placed"
    PRODUCTION_QUEUE = "production_queue"
    IN_PRODUCTION = "in_production"
    QUALITY_CHECK = "quality_check"
    READY_FOR_DELIVERY = "ready_for_delivery"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    SETTLEMENT = "settlement"
    COMPLETED = "completed"


class Order(Base):
    __tablename__ = "orders"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_number = Column(String(50), unique=True, index=True, nullable=False)
    client_id = Column(
        UUIDType, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    order_date = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    total = Column(Numeric(12, 4), nullable=False, default=0)
    stage = Column(String(30), nullable=False, default=WorkflowStage.ORDER_PLACED.value)
    assigned_driver_id = Column(String(255), nullable=True)

    production_notes = Column(Text, nullable=True)
    delivery_notes = Column(Text, nullable=True)

    # Stage timestamps
    production_started_at = Column(DateTime(timezone=True), nullable=True)
    production_completed_at = Column(DateTime(timezone=True), nullable=True)
    delivery_started_at = Column(DateTime(timezone=True), nullable=True)
    delivery_completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __mapper_args__ = {"version_id_col": version}


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(
        UUIDType, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    delivered_quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 4), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
