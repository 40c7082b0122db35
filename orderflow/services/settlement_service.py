"""Settlement session orchestrator.

A settlement takes the money a driver or the office collected from a client
and spreads it over the client's outstanding orders, oldest first. Pending
return credit is deducted before any money is allocated, and whatever is left
after every selected order is paid becomes standing credit on the client's
account. Everything a settlement does happens in one transaction, with the
client row locked, so two settlements for the same client cannot allocate
the same money twice.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.config import settings
from orderflow.core.database import unit_of_work
from orderflow.core.errors import (
    InvalidAmount,
    InvalidTransition,
    NegativeAmount,
    NoEligibleOrders,
    NotFound,
)
from orderflow.core.idempotency import find_replay, remember
from orderflow.models.order import Order, WorkflowStage
from orderflow.models.order_payment_record import OrderPaymentRecord
from orderflow.models.payment_transaction import TransactionType
from orderflow.models.settlement_allocation import AllocationType, SettlementAllocation
from orderflow.models.settlement_session import SettlementSession, SettlementStatus, SettlementType
from orderflow.repositories.client_repository import ClientRepository
from orderflow.repositories.order_payment_record_repository import (
    OUTSTANDING_STATUSES,
    OrderPaymentRecordRepository,
)
from orderflow.repositories.order_repository import OrderRepository
from orderflow.repositories.settlement_allocation_repository import SettlementAllocationRepository
from orderflow.repositories.settlement_session_repository import SettlementSessionRepository
from orderflow.schemas.payment import PaymentTransactionCreate
from orderflow.schemas.settlement import SettlementOptions
from orderflow.services.notification_service import SETTLEMENT_CREATED, ChangeNotifier
from orderflow.services.payment_ledger import PaymentLedger, to_amount
from orderflow.services.returns_service import ReturnsService
from orderflow.services.stage_machine import StageMachine

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class CollectionPlan:
    """What a driver should collect when delivering an order."""

    should_collect: bool
    orders_to_collect: list[OrderPaymentRecord] = field(default_factory=list)
    total_amount: Decimal = ZERO
    reason: str = ""


def settlement_status_for(
    amount_collected: Decimal, total_collectible: Decimal, defers_payment: bool
) -> SettlementStatus:
    if amount_collected == 0 or defers_payment:
        return SettlementStatus.NO_PAYMENT
    if amount_collected >= total_collectible:
        return SettlementStatus.COMPLETED
    return SettlementStatus.PARTIAL


class SettlementService:
    """Service for settlement sessions."""

    def __init__(
        self,
        db: Session,
        notifier: ChangeNotifier | None = None,
        stage_machine: StageMachine | None = None,
    ):
        self.db = db
        self.notifier = notifier
        self.stage_machine = stage_machine or StageMachine(db, notifier=notifier)
        self.ledger = PaymentLedger(db, notifier=notifier)
        self.returns = ReturnsService(db)
        self.client_repo = ClientRepository(db)
        self.order_repo = OrderRepository(db)
        self.record_repo = OrderPaymentRecordRepository(db)
        self.session_repo = SettlementSessionRepository(db)
        self.allocation_repo = SettlementAllocationRepository(db)

    def settle(
        self,
        client_id: UUID,
        amount_collected: Decimal,
        payment_method: str | None = None,
        options: SettlementOptions | None = None,
        idempotency_key: str | None = None,
    ) -> SettlementSession:
        """Settle money collected from a client against their outstanding orders.

        Raises:
            NegativeAmount: ``amount_collected`` is below zero.
            InvalidAmount: money was collected on a settlement that defers payment.
            NotFound: the client does not exist.
            NoEligibleOrders: an explicitly selected order is not outstanding for
                the client, or there is nothing to settle at all.
        """
        amount = self._validate_amount(amount_collected, options)
        options = options or SettlementOptions()

        replayed = find_replay(self.db, idempotency_key, "settle")
        if replayed is not None:
            return self.get_session(replayed)

        with unit_of_work(self.db):
            session = self._settle(client_id, amount, payment_method, options)
            remember(self.db, idempotency_key, "settle", session.id)  # type: ignore[arg-type]

        self._publish(session)
        return session

    def settle_delivery(
        self,
        order_id: UUID,
        amount_collected: Decimal,
        payment_method: str | None,
        actor_id: str,
        actor_role: str = "delivery",
        options: SettlementOptions | None = None,
        idempotency_key: str | None = None,
    ) -> SettlementSession:
        """Settle at the door and move the delivered order to ``settlement``.

        The settlement and the stage transition commit together or not at all.
        """
        amount = self._validate_amount(amount_collected, options)
        options = options or SettlementOptions()

        replayed = find_replay(self.db, idempotency_key, "settle_delivery")
        if replayed is not None:
            return self.get_session(replayed)

        with unit_of_work(self.db):
            order = self.order_repo.get_for_update(order_id)
            if not order:
                raise NotFound(f"Order {order_id} not found")
            if order.stage != WorkflowStage.DELIVERED.value:
                raise InvalidTransition(
                    f"Order {order.order_number} must be delivered before settlement, "
                    f"it is {order.stage}"
                )
            options = options.model_copy(
                update={
                    "origin_order_id": order.id,
                    "settlement_type": SettlementType.ORDER_DELIVERY,
                    "driver_id": options.driver_id or order.assigned_driver_id,
                    "recorded_by": options.recorded_by or actor_id,
                }
            )
            session = self._settle(order.client_id, amount, payment_method, options)  # type: ignore[arg-type]
            event = self.stage_machine.apply_transition(
                order,
                WorkflowStage.SETTLEMENT,
                actor_id,
                actor_role,
                note=options.notes,
                metadata={"settlement_id": str(session.id)},
            )
            remember(self.db, idempotency_key, "settle_delivery", session.id)  # type: ignore[arg-type]

        self.stage_machine.after_commit(order, event)
        self._publish(session)
        return session

    @staticmethod
    def _validate_amount(amount_collected: Decimal, options: SettlementOptions | None) -> Decimal:
        amount = to_amount(amount_collected)
        if amount < 0:
            raise NegativeAmount(f"Amount collected must not be negative, got {amount}")
        if options is not None and options.defers_payment and amount > 0:
            raise InvalidAmount(
                f"Payment type {options.payment_type.value} defers payment but {amount} was collected"
            )
        return amount

    def _select_orders(self, client_id: UUID, options: SettlementOptions) -> list[OrderPaymentRecord]:
        outstanding = self.record_repo.get_outstanding_by_client(client_id, for_update=True)
        if options.order_ids is None:
            return outstanding

        if not options.order_ids:
            raise NoEligibleOrders("No orders selected for settlement")
        by_order = {r.order_id: r for r in outstanding}
        missing = [str(oid) for oid in options.order_ids if oid not in by_order]
        if missing:
            raise NoEligibleOrders(
                f"Orders not outstanding for client {client_id}: {', '.join(missing)}"
            )
        wanted = set(options.order_ids)
        return [r for r in outstanding if r.order_id in wanted]

    def _settle(
        self,
        client_id: UUID,
        amount: Decimal,
        payment_method: str | None,
        options: SettlementOptions,
    ) -> SettlementSession:
        """Allocate inside the caller's transaction."""
        client = self.client_repo.get_for_update(client_id)
        if not client:
            raise NotFound(f"Client {client_id} not found")

        records = self._select_orders(client_id, options)
        if not records and amount == 0:
            raise NoEligibleOrders(f"Client {client_id} has no outstanding orders to settle")

        self.client_repo.touch_settled(client)
        method = payment_method or settings.DEFAULT_PAYMENT_METHOD
        collectible = sum(
            (
                max(ZERO, r.amount_remaining - self.returns.pending_credit(r.order_id))  # type: ignore[arg-type]
                for r in records
            ),
            ZERO,
        )

        session = self.session_repo.create(
            client_id=client_id,
            settlement_type=options.settlement_type.value,
            payment_type=options.payment_type.value,
            orders_to_collect=[str(r.order_id) for r in records],
            total_collectible=collectible,
            amount_collected=amount,
            payment_method=method,
            payment_reference=options.payment_reference,
            origin_order_id=options.origin_order_id,
            driver_id=options.driver_id,
            notes=options.notes,
            recorded_by=options.recorded_by,
        )

        for record in records:
            self.returns.apply_pending_returns(
                record, self.ledger, session.id, recorded_by=options.recorded_by  # type: ignore[arg-type]
            )

        if options.defers_payment:
            self._defer(records, session, options)
        else:
            self._allocate(records, amount, method, session, options)

        session.settlement_status = settlement_status_for(  # type: ignore[assignment]
            amount, collectible, options.defers_payment
        ).value
        self.db.flush()

        logger.info(
            "Settlement %s for client %s: collected %s of %s over %d orders (%s)",
            session.id,
            client_id,
            amount,
            collectible,
            len(records),
            session.settlement_status,
        )
        return session

    def _allocate(
        self,
        records: list[OrderPaymentRecord],
        amount: Decimal,
        method: str,
        session: SettlementSession,
        options: SettlementOptions,
    ) -> None:
        remaining = amount
        for record in records:
            if remaining <= 0:
                break
            due = record.amount_remaining
            if due <= 0:
                continue

            applied = min(due, remaining)
            self.ledger.apply(
                record,
                applied,
                method=method,
                reference=options.payment_reference,
                recorded_by=options.recorded_by,
                settlement_id=session.id,  # type: ignore[arg-type]
            )
            self.allocation_repo.create(
                settlement_id=session.id,  # type: ignore[arg-type]
                order_id=record.order_id,  # type: ignore[arg-type]
                allocation_type=AllocationType.PAYMENT,
                amount=applied,
            )
            remaining -= applied

        if remaining > 0:
            self.ledger.log.append(
                PaymentTransactionCreate(
                    client_id=session.client_id,  # type: ignore[arg-type]
                    transaction_type=TransactionType.CREDIT_APPLIED,
                    amount=remaining,
                    related_settlement_id=session.id,  # type: ignore[arg-type]
                    payment_method=method,
                    reference_number=options.payment_reference,
                    description="Excess payment held as account credit",
                    recorded_by=options.recorded_by,
                )
            )
            session.credit_amount = remaining  # type: ignore[assignment]

    def _defer(
        self,
        records: list[OrderPaymentRecord],
        session: SettlementSession,
        options: SettlementOptions,
    ) -> None:
        for record in records:
            txn = self.ledger.create_debt(
                record, recorded_by=options.recorded_by, settlement_id=session.id  # type: ignore[arg-type]
            )
            if txn is not None:
                self.allocation_repo.create(
                    settlement_id=session.id,  # type: ignore[arg-type]
                    order_id=record.order_id,  # type: ignore[arg-type]
                    allocation_type=AllocationType.DEBT,
                    amount=abs(Decimal(str(txn.amount))),
                )

    def correct_settlement_status(
        self, settlement_id: UUID, status: SettlementStatus, note: str | None = None
    ) -> SettlementSession:
        """Correct the status of a recorded session. Nothing else may change."""
        with unit_of_work(self.db):
            session = self.get_session(settlement_id)
            previous = session.settlement_status
            session.settlement_status = SettlementStatus(status).value  # type: ignore[assignment]
            correction = f"Status corrected {previous} -> {session.settlement_status}"
            if note:
                correction = f"{correction}: {note}"
            session.notes = f"{session.notes}\n{correction}" if session.notes else correction  # type: ignore[assignment]

        logger.info("Settlement %s status corrected to %s", settlement_id, status)
        return session

    def collection_plan(self, order_id: UUID) -> CollectionPlan:
        """Which orders to collect for when ``order_id`` is delivered.

        Clients on the return policy pay for their previous orders at each
        delivery rather than for the one being delivered.
        """
        order = self._require_order(order_id)
        client = self.client_repo.get_by_id(order.client_id)  # type: ignore[arg-type]
        if not client:
            raise NotFound(f"Client {order.client_id} not found")

        if not client.return_policy_enabled:
            record = self.ledger.get_record(order_id)
            outstanding = record.payment_status in OUTSTANDING_STATUSES
            return CollectionPlan(
                should_collect=outstanding,
                orders_to_collect=[record] if outstanding else [],
                total_amount=record.amount_remaining if outstanding else ZERO,
                reason="Standard payment: no return policy",
            )

        previous = self.record_repo.get_outstanding_by_client(
            client.id, exclude_order_id=order_id  # type: ignore[arg-type]
        )
        total = sum((r.amount_remaining for r in previous), ZERO)
        reason = (
            f"Return policy: collecting for {len(previous)} previous orders"
            if previous
            else "Return policy: no previous orders to collect"
        )
        return CollectionPlan(
            should_collect=bool(previous),
            orders_to_collect=previous,
            total_amount=total,
            reason=reason,
        )

    def _require_order(self, order_id: UUID) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return order

    def get_session(self, settlement_id: UUID) -> SettlementSession:
        session = self.session_repo.get_by_id(settlement_id)
        if not session:
            raise NotFound(f"Settlement {settlement_id} not found")
        return session

    def get_allocations(self, settlement_id: UUID) -> list[SettlementAllocation]:
        self.get_session(settlement_id)
        return self.allocation_repo.get_by_settlement_id(settlement_id)

    def history(self, client_id: UUID, skip: int = 0, limit: int = 100) -> list[SettlementSession]:
        if not self.client_repo.get_by_id(client_id):
            raise NotFound(f"Client {client_id} not found")
        return self.session_repo.get_by_client_id(client_id, skip=skip, limit=limit)

    def _publish(self, session: SettlementSession) -> None:
        if self.notifier is None:
            return
        self.notifier.publish(
            SETTLEMENT_CREATED,
            {
                "settlement_id": str(session.id),
                "client_id": str(session.client_id),
                "origin_order_id": str(session.origin_order_id) if session.origin_order_id else None,
                "amount_collected": str(session.amount_collected),
                "settlement_status": session.settlement_status,
            },
        )
