from sqlalchemy import Column, DateTime, ForeignKey, Numeric

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class ClientBalance(Base):
    """Cached per-client summary of the transaction ledger.

    ``current_balance`` is negative when the client owes money. The row is a
    cache: it can always be rebuilt from ``payment_transactions``.
    """

    __tablename__ = "client_balances"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    client_id = Column(
        UUIDType,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True,
    )
    current_balance = Column(Numeric(12, 4), nullable=False, default=0)
    total_debt = Column(Numeric(12, 4), nullable=False, default=0)
    total_credit = Column(Numeric(12, 4), nullable=False, default=0)
    last_payment_date = Column(DateTime(timezone=True), nullable=True)
    last_order_date = Column(DateTime(timezone=True), nullable=True)

    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
