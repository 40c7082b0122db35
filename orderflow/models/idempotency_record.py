"""IdempotencyRecord model for retry-safe ledger operations."""

from sqlalchemy import Column, DateTime, String

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class IdempotencyRecord(Base):
    """Maps a client-supplied key to the result of the operation it created."""

    __tablename__ = "idempotency_records"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    idempotency_key = Column(String(255), nullable=False, unique=True, index=True)
    operation = Column(String(50), nullable=False)
    resource_id = Column(UUIDType, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
