"""WorkflowEvent model - append-only audit trail of stage transitions."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class WorkflowEvent(Base):
    """One row per successful transition. Never updated or deleted."""

    __tablename__ = "workflow_events"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_id = Column(
        UUIDType, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    stage = Column(String(30), nullable=False)
    previous_stage = Column(String(30), nullable=False)
    actor_id = Column(String(255), nullable=False)
    actor_role = Column(String(50), nullable=False)
    note = Column(Text, nullable=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
