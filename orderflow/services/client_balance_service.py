"""Client balance aggregator and client-facing account queries."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.config import settings
from orderflow.core.database import unit_of_work
from orderflow.core.errors import NotFound
from orderflow.models.client import Client
from orderflow.models.client_balance import ClientBalance
from orderflow.models.order_payment_record import OrderPaymentRecord
from orderflow.models.payment_transaction import PaymentTransaction, TransactionType
from orderflow.models.settlement_session import SettlementSession
from orderflow.repositories.client_balance_repository import ClientBalanceRepository
from orderflow.repositories.client_repository import ClientRepository
from orderflow.repositories.order_payment_record_repository import OrderPaymentRecordRepository
from orderflow.repositories.order_repository import OrderRepository
from orderflow.repositories.payment_transaction_repository import PaymentTransactionRepository
from orderflow.repositories.settlement_session_repository import SettlementSessionRepository

logger = logging.getLogger(__name__)


@dataclass
class ClientPaymentSheet:
    """Everything the dashboards show on a client's account page."""

    client: Client
    balance: ClientBalance
    unpaid_orders: list[OrderPaymentRecord]
    recent_transactions: list[PaymentTransaction]
    recent_settlements: list[SettlementSession]
    return_policy: dict[str, object]


class ClientBalanceService:
    """Maintains the cached ``ClientBalance`` row of each client.

    The cache is updated incrementally by ``apply_transaction`` whenever a
    ledger row is appended, and can be rebuilt from scratch by ``recompute``.
    Both paths use the same sign convention: the stored signed amount is
    added to ``current_balance``; ``total_debt`` accumulates created debt and
    ``total_credit`` accumulates standing credit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.balance_repo = ClientBalanceRepository(db)
        self.client_repo = ClientRepository(db)
        self.txn_repo = PaymentTransactionRepository(db)

    def _require_client(self, client_id: UUID) -> Client:
        client = self.client_repo.get_by_id(client_id)
        if not client:
            raise NotFound(f"Client {client_id} not found")
        return client

    def apply_transaction(self, txn: PaymentTransaction) -> ClientBalance:
        """Fold one freshly inserted ledger row into the cached balance."""
        balance = self.balance_repo.get_or_create(txn.client_id)  # type: ignore[arg-type]
        amount = Decimal(str(txn.amount))

        balance.current_balance = Decimal(str(balance.current_balance)) + amount  # type: ignore[assignment]
        if txn.transaction_type == TransactionType.DEBT_CREATED.value:
            balance.total_debt = Decimal(str(balance.total_debt)) + abs(amount)  # type: ignore[assignment]
        elif txn.transaction_type == TransactionType.CREDIT_APPLIED.value:
            balance.total_credit = Decimal(str(balance.total_credit)) + amount  # type: ignore[assignment]
        elif txn.transaction_type == TransactionType.PAYMENT_RECEIVED.value:
            balance.last_payment_date = txn.created_at

        self.db.flush()
        return balance

    def recompute(self, client_id: UUID) -> ClientBalance:
        """Rebuild a client's balance from the transaction log.

        Idempotent and safe to run at any time as a repair operation.
        """
        self._require_client(client_id)

        with unit_of_work(self.db):
            totals = self.txn_repo.sum_by_type(client_id)
            balance = self.balance_repo.get_or_create(client_id)
            balance.current_balance = sum(totals.values(), Decimal("0"))  # type: ignore[assignment]
            balance.total_debt = abs(  # type: ignore[assignment]
                totals.get(TransactionType.DEBT_CREATED.value, Decimal("0"))
            )
            balance.total_credit = totals.get(  # type: ignore[assignment]
                TransactionType.CREDIT_APPLIED.value, Decimal("0")
            )
            balance.last_payment_date = self.txn_repo.last_payment_date(client_id)  # type: ignore[assignment]
            balance.last_order_date = OrderRepository(self.db).get_latest_order_date(client_id)  # type: ignore[assignment]

        logger.info(
            "Recomputed balance for client %s: %s", client_id, balance.current_balance
        )
        return balance

    def touch_last_order_date(self, client_id: UUID, order_date: datetime) -> ClientBalance:
        """Record a newly placed order on the balance row. Caller owns the transaction."""
        balance = self.balance_repo.get_or_create(client_id)
        latest = OrderRepository(self.db).get_latest_order_date(client_id)
        balance.last_order_date = latest or order_date  # type: ignore[assignment]
        self.db.flush()
        return balance

    def get_balance(self, client_id: UUID) -> ClientBalance:
        self._require_client(client_id)
        balance = self.balance_repo.get_by_client_id(client_id)
        if balance is None:
            with unit_of_work(self.db):
                balance = self.balance_repo.get_or_create(client_id)
        return balance

    def unpaid_orders(self, client_id: UUID) -> list[OrderPaymentRecord]:
        """Unpaid and partially paid orders, oldest first."""
        self._require_client(client_id)
        return OrderPaymentRecordRepository(self.db).get_outstanding_by_client(client_id)

    def transactions(self, client_id: UUID, skip: int = 0, limit: int = 100) -> list[PaymentTransaction]:
        self._require_client(client_id)
        return self.txn_repo.get_by_client_id(client_id, skip=skip, limit=limit)

    def payment_sheet(self, client_id: UUID) -> ClientPaymentSheet:
        client = self._require_client(client_id)
        return ClientPaymentSheet(
            client=client,
            balance=self.get_balance(client_id),
            unpaid_orders=self.unpaid_orders(client_id),
            recent_transactions=self.txn_repo.get_by_client_id(
                client_id, limit=settings.RECENT_TRANSACTIONS_LIMIT
            ),
            recent_settlements=SettlementSessionRepository(self.db).get_by_client_id(
                client_id, limit=settings.RECENT_SETTLEMENTS_LIMIT
            ),
            return_policy={
                "policy_enabled": client.return_policy_enabled,
                "payment_delay_orders": client.payment_delay_orders,
                "max_debt_limit": client.max_debt_limit,
            },
        )
