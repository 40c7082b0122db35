"""PaymentTransaction model - the append-only client ledger."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric, String, Text

from orderflow.core.database import Base
from orderflow.models.shared import UUIDType, generate_uuid, utc_now


class TransactionType(str, Enum):
    PAYMENT_RECEIVED = "payment_received"
    DEBT_CREATED = "debt_created"
    DEBT_FORGIVEN = "debt_forgiven"
    CREDIT_APPLIED = "credit_applied"
    ADJUSTMENT = "adjustment"


class PaymentTransaction(Base):
    """A balance-affecting event. Never updated after insertion.

    ``amount`` is signed: received money, credit and forgiven debt are
    positive, created debt is negative, adjustments carry their own sign.
    """

    __tablename__ = "payment_transactions"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    client_id = Column(
        UUIDType, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    transaction_type = Column(String(30), nullable=False)
    amount = Column(Numeric(12, 4), nullable=False)

    related_order_id = Column(
        UUIDType, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    related_settlement_id = Column(
        UUIDType,
        ForeignKey("settlement_sessions.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    related_return_id = Column(
        UUIDType, ForeignKey("order_returns.id", ondelete="RESTRICT"), nullable=True
    )
    reverses_transaction_id = Column(
        UUIDType,
        ForeignKey("payment_transactions.id", ondelete="RESTRICT"),
        nullable=True,
        unique=True,
    )

    payment_method = Column(String(50), nullable=True)
    reference_number = Column(String(255), nullable=True)
    description = Column(Text, nullable=False, default="")
    recorded_by = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    __table_args__ = (Index("ix_payment_transactions_client_type", "client_id", "transaction_type"),)
