from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProductionTask(Base):
    __tablename__ = "production_tasks"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(
        UUIDType, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    priority = Column(String(10), nullable=False, default=TaskPriority.LOW.value)
    estimated_minutes = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
