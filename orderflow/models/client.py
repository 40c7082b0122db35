from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class Client(Base):
    __tablename__ = "clients"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    business_name = Column(String(255), nullable=True)

    # Return policy: when enabled, a delivery collects payment for the
    # client's previous orders instead of the one being delivered.
    return_policy_enabled = Column(Boolean, nullable=False, default=True)
    payment_delay_orders = Column(Integer, nullable=False, default=1)
    max_debt_limit = Column(Numeric(12, 4), nullable=False, default=1000)

    # Touched by every money allocation so concurrent settlements for the
    # same client collide on the version column.
    last_settled_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __mapper_args__ = {"version_id_col": version}
