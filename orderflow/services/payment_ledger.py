"""Order payment ledger: per-order paid/remaining figures and their ledger rows."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.config import settings
from orderflow.core.database import unit_of_work
from orderflow.core.errors import InvalidAmount, NotFound
from orderflow.core.idempotency import find_replay, remember
from orderflow.models.order_payment_record import OrderPaymentRecord, PaymentStatus
from orderflow.models.payment_transaction import PaymentTransaction, TransactionType
from orderflow.models.shared import utc_now
from orderflow.repositories.client_repository import ClientRepository
from orderflow.repositories.order_payment_record_repository import OrderPaymentRecordRepository
from orderflow.schemas.payment import PaymentTransactionCreate
from orderflow.services.notification_service import ORDER_PAYMENT_APPLIED, ChangeNotifier
from orderflow.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def to_amount(value: Any) -> Decimal:
    """Coerce monetary input to Decimal, rejecting anything that is not a finite number."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Invalid amount: {value!r}") from None
    if not amount.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}")
    return amount


def compute_payment_status(order_total: Decimal, amount_paid: Decimal) -> PaymentStatus:
    total = Decimal(str(order_total))
    paid = Decimal(str(amount_paid))
    if paid > total:
        return PaymentStatus.OVERPAID
    if paid == total:
        return PaymentStatus.PAID
    if paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def refresh_status(record: OrderPaymentRecord) -> None:
    """Recompute a record's status from its figures. Waived records stay waived."""
    if record.payment_status == PaymentStatus.WAIVED.value:
        return
    record.payment_status = compute_payment_status(  # type: ignore[assignment]
        record.order_total, record.amount_paid  # type: ignore[arg-type]
    ).value


def _append_note(existing: str | None, note: str) -> str:
    return f"{existing}\n{note}" if existing else note


class PaymentLedger:
    """Applies payments to orders and keeps the ledger in step.

    ``apply`` is the primitive the settlement orchestrator calls once per
    order inside its own transaction; ``apply_payment`` is the standalone,
    committing variant.
    """

    def __init__(self, db: Session, notifier: ChangeNotifier | None = None):
        self.db = db
        self.notifier = notifier
        self.record_repo = OrderPaymentRecordRepository(db)
        self.client_repo = ClientRepository(db)
        self.log = TransactionLog(db)

    def get_record(self, order_id: UUID) -> OrderPaymentRecord:
        record = self.record_repo.get_by_order_id(order_id)
        if not record:
            raise NotFound(f"Payment record for order {order_id} not found")
        return record

    def _lock_record(self, order_id: UUID) -> OrderPaymentRecord:
        record = self.record_repo.get_by_order_id_for_update(order_id)
        if not record:
            raise NotFound(f"Payment record for order {order_id} not found")
        return record

    def _lock_client(self, client_id: UUID) -> None:
        client = self.client_repo.get_for_update(client_id)
        if not client:
            raise NotFound(f"Client {client_id} not found")
        self.client_repo.touch_settled(client)

    def apply_payment(
        self,
        order_id: UUID,
        amount: Decimal,
        method: str | None = None,
        reference: str | None = None,
        note: str | None = None,
        recorded_by: str | None = None,
        idempotency_key: str | None = None,
    ) -> OrderPaymentRecord:
        """Apply a payment to one order and commit.

        Raises:
            NotFound: the order has no payment record.
            InvalidAmount: the amount is negative or the order is waived.
        """
        amount = to_amount(amount)
        if amount < 0:
            raise InvalidAmount("Payment amount must be >= 0; use an adjustment for corrections")

        replayed = find_replay(self.db, idempotency_key, "apply_payment")
        if replayed is not None:
            return self.get_record(replayed)

        with unit_of_work(self.db):
            record = self._lock_record(order_id)
            if record.payment_status == PaymentStatus.WAIVED.value:
                raise InvalidAmount(f"Order {order_id} is waived and accepts no payments")
            self._lock_client(record.client_id)  # type: ignore[arg-type]
            txn = self.apply(record, amount, method, reference, note, recorded_by)
            remember(self.db, idempotency_key, "apply_payment", record.order_id)  # type: ignore[arg-type]

        if txn is not None:
            self._publish_payment(record, txn)
        return record

    def apply(
        self,
        record: OrderPaymentRecord,
        amount: Decimal,
        method: str | None = None,
        reference: str | None = None,
        note: str | None = None,
        recorded_by: str | None = None,
        settlement_id: UUID | None = None,
    ) -> PaymentTransaction | None:
        """Add ``amount`` to a record and append the ``payment_received`` row.

        Runs inside the caller's transaction. A zero amount changes nothing
        and writes no ledger row.
        """
        amount = to_amount(amount)
        if amount < 0:
            raise InvalidAmount("Payment amount must be >= 0")
        if amount == 0:
            return None

        method = method or settings.DEFAULT_PAYMENT_METHOD
        record.amount_paid = Decimal(str(record.amount_paid)) + amount  # type: ignore[assignment]
        refresh_status(record)
        record.payment_method = method  # type: ignore[assignment]
        if reference:
            record.payment_reference = reference  # type: ignore[assignment]
        record.payment_date = utc_now()  # type: ignore[assignment]
        if note:
            record.notes = _append_note(record.notes, note)  # type: ignore[assignment,arg-type]

        txn = self.log.append(
            PaymentTransactionCreate(
                client_id=record.client_id,  # type: ignore[arg-type]
                transaction_type=TransactionType.PAYMENT_RECEIVED,
                amount=amount,
                related_order_id=record.order_id,  # type: ignore[arg-type]
                related_settlement_id=settlement_id,
                payment_method=method,
                reference_number=reference,
                description=note or "Payment received",
                recorded_by=recorded_by,
            )
        )
        logger.info(
            "Applied payment of %s to order %s (status %s)",
            amount,
            record.order_id,
            record.payment_status,
        )
        return txn

    def create_debt(
        self,
        record: OrderPaymentRecord,
        recorded_by: str | None = None,
        settlement_id: UUID | None = None,
    ) -> PaymentTransaction | None:
        """Record the order's unpaid remainder as client debt.

        Leaves the payment record untouched. Debt already on the ledger for the
        order is not recorded twice.
        """
        exposure = self.log.order_exposure(record.order_id)  # type: ignore[arg-type]
        debt = record.amount_remaining - exposure
        if debt <= 0:
            return None

        txn = self.log.append(
            PaymentTransactionCreate(
                client_id=record.client_id,  # type: ignore[arg-type]
                transaction_type=TransactionType.DEBT_CREATED,
                amount=-debt,
                related_order_id=record.order_id,  # type: ignore[arg-type]
                related_settlement_id=settlement_id,
                description="Payment deferred",
                recorded_by=recorded_by,
            )
        )
        logger.info("Created debt of %s for order %s", debt, record.order_id)
        return txn

    def release_excess_debt(
        self,
        record: OrderPaymentRecord,
        description: str,
        recorded_by: str | None = None,
        settlement_id: UUID | None = None,
        return_id: UUID | None = None,
    ) -> PaymentTransaction | None:
        """Release ledger debt that no longer corresponds to anything owed.

        Called after the amount owed on an order shrinks (return credit, fewer
        items delivered). Writes a positive adjustment for the part of the
        order's exposure above its new remaining amount, so the release never
        exceeds the exposure.
        """
        exposure = self.log.order_exposure(record.order_id)  # type: ignore[arg-type]
        release = exposure - record.amount_remaining
        if release <= 0:
            return None
        return self.log.append(
            PaymentTransactionCreate(
                client_id=record.client_id,  # type: ignore[arg-type]
                transaction_type=TransactionType.ADJUSTMENT,
                amount=release,
                related_order_id=record.order_id,  # type: ignore[arg-type]
                related_settlement_id=settlement_id,
                related_return_id=return_id,
                description=description,
                recorded_by=recorded_by,
            )
        )

    def choose_payment_method(self, order_id: UUID, method: str) -> OrderPaymentRecord:
        if not method or not method.strip():
            raise InvalidAmount("Payment method is required")
        with unit_of_work(self.db):
            record = self._lock_record(order_id)
            record.payment_method = method.strip()  # type: ignore[assignment]
        logger.info("Order %s payment method set to %s", order_id, method)
        return record

    def reverse_payment(
        self, transaction_id: UUID, reason: str, recorded_by: str | None = None
    ) -> PaymentTransaction:
        """Undo a received payment with a compensating adjustment.

        Only ``payment_received`` rows tied to an order can be reversed, and
        each at most once.
        """
        original = self.log.get(transaction_id)
        if not original:
            raise NotFound(f"Transaction {transaction_id} not found")
        if original.transaction_type != TransactionType.PAYMENT_RECEIVED.value:
            raise InvalidAmount("Only received payments can be reversed")
        if original.related_order_id is None:
            raise InvalidAmount("Only payments applied to an order can be reversed")
        if self.log.txn_repo.get_reversal_of(transaction_id) is not None:
            raise InvalidAmount(f"Transaction {transaction_id} has already been reversed")

        amount = Decimal(str(original.amount))
        with unit_of_work(self.db):
            record = self._lock_record(original.related_order_id)  # type: ignore[arg-type]
            self._lock_client(original.client_id)  # type: ignore[arg-type]
            record.amount_paid = max(ZERO, Decimal(str(record.amount_paid)) - amount)  # type: ignore[assignment]
            refresh_status(record)
            reversal = self.log.append(
                PaymentTransactionCreate(
                    client_id=original.client_id,  # type: ignore[arg-type]
                    transaction_type=TransactionType.ADJUSTMENT,
                    amount=-amount,
                    related_order_id=original.related_order_id,  # type: ignore[arg-type]
                    related_settlement_id=original.related_settlement_id,  # type: ignore[arg-type]
                    reverses_transaction_id=original.id,  # type: ignore[arg-type]
                    payment_method=original.payment_method,  # type: ignore[arg-type]
                    reference_number=original.reference_number,  # type: ignore[arg-type]
                    description=f"Reversal: {reason}",
                    recorded_by=recorded_by,
                )
            )

        logger.info("Reversed payment %s of %s: %s", transaction_id, amount, reason)
        return reversal

    def waive_order(
        self, order_id: UUID, reason: str, recorded_by: str | None = None
    ) -> OrderPaymentRecord:
        """Stop collecting an order and forgive the debt recorded for it."""
        with unit_of_work(self.db):
            record = self._lock_record(order_id)
            if record.payment_status == PaymentStatus.WAIVED.value:
                return record
            if record.amount_remaining <= 0:
                raise InvalidAmount(f"Order {order_id} has nothing outstanding to waive")

            self._lock_client(record.client_id)  # type: ignore[arg-type]
            exposure = self.log.order_exposure(order_id)
            record.payment_status = PaymentStatus.WAIVED.value  # type: ignore[assignment]
            record.notes = _append_note(record.notes, f"Waived: {reason}")  # type: ignore[assignment,arg-type]
            if exposure > 0:
                self.log.append(
                    PaymentTransactionCreate(
                        client_id=record.client_id,  # type: ignore[arg-type]
                        transaction_type=TransactionType.DEBT_FORGIVEN,
                        amount=exposure,
                        related_order_id=record.order_id,  # type: ignore[arg-type]
                        description=f"Debt forgiven: {reason}",
                        recorded_by=recorded_by,
                    )
                )

        logger.info("Waived order %s: %s", order_id, reason)
        return record

    def record_adjustment(
        self,
        client_id: UUID,
        amount: Decimal,
        description: str,
        recorded_by: str | None = None,
    ) -> PaymentTransaction:
        """Append a signed manual correction to a client's ledger."""
        amount = to_amount(amount)
        if amount == 0:
            raise InvalidAmount("Adjustment amount must be non-zero")
        with unit_of_work(self.db):
            self._lock_client(client_id)
            txn = self.log.append(
                PaymentTransactionCreate(
                    client_id=client_id,
                    transaction_type=TransactionType.ADJUSTMENT,
                    amount=amount,
                    description=description,
                    recorded_by=recorded_by,
                )
            )
        logger.info("Recorded adjustment of %s for client %s", amount, client_id)
        return txn

    def _publish_payment(self, record: OrderPaymentRecord, txn: PaymentTransaction) -> None:
        if self.notifier is None:
            return
        self.notifier.publish(
            ORDER_PAYMENT_APPLIED,
            {
                "order_id": str(record.order_id),
                "client_id": str(record.client_id),
                "amount": str(txn.amount),
                "payment_status": record.payment_status,
                "transaction_id": str(txn.id),
            },
        )
