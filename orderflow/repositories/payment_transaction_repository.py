"""Payment transaction repository. Rows are inserted and read, never updated."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from orderflow.models.payment_transaction import PaymentTransaction, TransactionType
from orderflow.schemas.payment import PaymentTransactionCreate


class PaymentTransactionRepository:
    """Repository for PaymentTransaction model."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, data: PaymentTransactionCreate) -> PaymentTransaction:
        """Append a ledger row."""
        txn = PaymentTransaction(
            client_id=data.client_id,
            transaction_type=data.transaction_type.value,
            amount=data.amount,
            related_order_id=data.related_order_id,
            related_settlement_id=data.related_settlement_id,
            related_return_id=data.related_return_id,
            reverses_transaction_id=data.reverses_transaction_id,
            payment_method=data.payment_method,
            reference_number=data.reference_number,
            description=data.description,
            recorded_by=data.recorded_by,
        )
        self.db.add(txn)
        self.db.flush()
        return txn

    def get_by_id(self, transaction_id: UUID) -> PaymentTransaction | None:
        return self.db.query(PaymentTransaction).filter(PaymentTransaction.id == transaction_id).first()

    def get_by_client_id(
        self,
        client_id: UUID,
        skip: int = 0,
        limit: int = 100,
        transaction_type: TransactionType | None = None,
    ) -> list[PaymentTransaction]:
        """Get a client's transactions, newest first."""
        query = self.db.query(PaymentTransaction).filter(PaymentTransaction.client_id == client_id)
        if transaction_type:
            query = query.filter(PaymentTransaction.transaction_type == transaction_type.value)
        return query.order_by(PaymentTransaction.created_at.desc()).offset(skip).limit(limit).all()

    def count_by_client_id(self, client_id: UUID) -> int:
        return self.db.query(PaymentTransaction).filter(PaymentTransaction.client_id == client_id).count()

    def get_by_settlement_id(self, settlement_id: UUID) -> list[PaymentTransaction]:
        return (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.related_settlement_id == settlement_id)
            .order_by(PaymentTransaction.created_at.asc())
            .all()
        )

    def get_reversal_of(self, transaction_id: UUID) -> PaymentTransaction | None:
        return (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.reverses_transaction_id == transaction_id)
            .first()
        )

    def sum_for_client(self, client_id: UUID) -> Decimal:
        """Signed sum of all of a client's transactions."""
        result = (
            self.db.query(sa_func.sum(PaymentTransaction.amount))
            .filter(PaymentTransaction.client_id == client_id)
            .scalar()
        )
        return Decimal(str(result)) if result else Decimal("0")

    def sum_by_type(self, client_id: UUID) -> dict[str, Decimal]:
        """Signed sum of a client's transactions per transaction type."""
        rows = (
            self.db.query(PaymentTransaction.transaction_type, sa_func.sum(PaymentTransaction.amount))
            .filter(PaymentTransaction.client_id == client_id)
            .group_by(PaymentTransaction.transaction_type)
            .all()
        )
        return {txn_type: Decimal(str(total)) if total else Decimal("0") for txn_type, total in rows}

    def get_by_order_id(self, order_id: UUID) -> list[PaymentTransaction]:
        """Get the transactions referencing an order, oldest first."""
        return (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.related_order_id == order_id)
            .order_by(PaymentTransaction.created_at.asc())
            .all()
        )

    def last_payment_date(self, client_id: UUID) -> datetime | None:
        result = (
            self.db.query(sa_func.max(PaymentTransaction.created_at))
            .filter(
                PaymentTransaction.client_id == client_id,
                PaymentTransaction.transaction_type == TransactionType.PAYMENT_RECEIVED.value,
            )
            .scalar()
        )
        return result  # type: ignore[no-any-return]
