"""Append-only payment transaction log.

Every balance-affecting event goes through ``TransactionLog.append`` so the
cached client balance is updated in the same transaction as the row it
summarises.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.errors import InvalidAmount
from orderflow.models.payment_transaction import PaymentTransaction, TransactionType
from orderflow.repositories.payment_transaction_repository import PaymentTransactionRepository
from orderflow.schemas.payment import PaymentTransactionCreate
from orderflow.services.client_balance_service import ClientBalanceService

# Types whose stored amount must be positive / negative
POSITIVE_TYPES = {
    TransactionType.PAYMENT_RECEIVED,
    TransactionType.CREDIT_APPLIED,
    TransactionType.DEBT_FORGIVEN,
}
NEGATIVE_TYPES = {TransactionType.DEBT_CREATED}


class TransactionLog:
    def __init__(self, db: Session):
        self.db = db
        self.txn_repo = PaymentTransactionRepository(db)
        self.balance_service = ClientBalanceService(db)

    def append(self, data: PaymentTransactionCreate) -> PaymentTransaction:
        """Insert a ledger row and fold it into the client's cached balance."""
        amount = Decimal(str(data.amount))
        if data.transaction_type in POSITIVE_TYPES and amount <= 0:
            raise InvalidAmount(f"{data.transaction_type.value} amount must be positive")
        if data.transaction_type in NEGATIVE_TYPES and amount >= 0:
            raise InvalidAmount(f"{data.transaction_type.value} amount must be negative")

        txn = self.txn_repo.create(data)
        self.balance_service.apply_transaction(txn)
        return txn

    def order_exposure(self, order_id: UUID) -> Decimal:
        """Ledger debt still attributed to an order.

        Walks the order's rows oldest first. Recorded debt opens exposure;
        payments, credit, forgiveness and releases close it, but only up to
        what is open, so money taken before any debt existed never offsets
        debt recorded later. A payment reversal reopens exactly what the
        reversed payment closed.
        """
        exposure = Decimal("0")
        closed: dict[UUID, Decimal] = {}
        for txn in self.txn_repo.get_by_order_id(order_id):
            amount = Decimal(str(txn.amount))
            if txn.reverses_transaction_id is not None:
                exposure += closed.get(txn.reverses_transaction_id, Decimal("0"))  # type: ignore[call-overload]
            elif amount < 0:
                exposure -= amount
            else:
                reduction = min(amount, exposure)
                exposure -= reduction
                closed[txn.id] = reduction  # type: ignore[index]
        return exposure

    def get(self, transaction_id: UUID) -> PaymentTransaction | None:
        return self.txn_repo.get_by_id(transaction_id)

    def for_client(self, client_id: UUID, skip: int = 0, limit: int = 100) -> list[PaymentTransaction]:
        return self.txn_repo.get_by_client_id(client_id, skip=skip, limit=limit)
