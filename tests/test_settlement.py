"""Tests for the settlement orchestrator."""

import uuid
from decimal import Decimal

import pytest

from orderflow.core.errors import (
    InvalidAmount,
    InvalidTransition,
    NegativeAmount,
    NoEligibleOrders,
    NotFound,
)
from orderflow.models.order import WorkflowStage
from orderflow.models.order_payment_record import PaymentStatus
from orderflow.models.payment_transaction import PaymentTransaction, TransactionType
from orderflow.models.settlement_allocation import AllocationType
from orderflow.models.settlement_session import (
    PaymentType,
    SettlementSession,
    SettlementStatus,
    SettlementType,
)
from orderflow.repositories.settlement_allocation_repository import SettlementAllocationRepository
from orderflow.schemas.order import OrderItemCreate
from orderflow.schemas.order_return import OrderReturnCreate, ReturnLineItemCreate
from orderflow.schemas.settlement import SettlementOptions
from orderflow.services.client_balance_service import ClientBalanceService
from orderflow.services.notification_service import ORDER_STAGE_CHANGED, SETTLEMENT_CREATED
from orderflow.services.payment_ledger import PaymentLedger
from orderflow.services.returns_service import ReturnsService
from orderflow.services.settlement_service import SettlementService, settlement_status_for
from orderflow.services.stage_machine import StageMachine

TO_DELIVERED = [
    WorkflowStage.PRODUCTION_QUEUE,
    WorkflowStage.IN_PRODUCTION,
    WorkflowStage.QUALITY_CHECK,
    WorkflowStage.READY_FOR_DELIVERY,
    WorkflowStage.OUT_FOR_DELIVERY,
    WorkflowStage.DELIVERED,
]


@pytest.fixture
def service(db_session, notifier):
    return SettlementService(db_session, notifier=notifier)


@pytest.fixture
def ledger(db_session):
    return PaymentLedger(db_session)


@pytest.fixture
def balances(db_session):
    return ClientBalanceService(db_session)


def deliver(db_session, order, driver_id="driver-7"):
    machine = StageMachine(db_session)
    for stage in TO_DELIVERED:
        metadata = {"driver_id": driver_id} if stage == WorkflowStage.OUT_FOR_DELIVERY else None
        machine.transition(order.id, stage, "staff-1", "staff", metadata=metadata)
    return order


def defer():
    return SettlementOptions(payment_type=PaymentType.NO_PAYMENT)


def ledger_rows(db_session, client_id, txn_type):
    return (
        db_session.query(PaymentTransaction)
        .filter(
            PaymentTransaction.client_id == client_id,
            PaymentTransaction.transaction_type == txn_type.value,
        )
        .all()
    )


@pytest.mark.parametrize(
    ("collected", "collectible", "defers", "expected"),
    [
        ("0", "100", False, SettlementStatus.NO_PAYMENT),
        ("0", "100", True, SettlementStatus.NO_PAYMENT),
        ("40", "100", False, SettlementStatus.PARTIAL),
        ("100", "100", False, SettlementStatus.COMPLETED),
        ("120", "100", False, SettlementStatus.COMPLETED),
    ],
)
def test_settlement_status_for(collected, collectible, defers, expected):
    assert settlement_status_for(Decimal(collected), Decimal(collectible), defers) == expected


class TestAllocation:
    def test_fifo_oldest_first(self, service, ledger, client_row, make_order):
        newest = make_order(client_row, total="20", day=2)
        oldest = make_order(client_row, total="30", day=0)
        middle = make_order(client_row, total="50", day=1)

        session = service.settle(client_row.id, Decimal("60"))

        assert ledger.get_record(oldest.id).payment_status == PaymentStatus.PAID.value
        middle_record = ledger.get_record(middle.id)
        assert middle_record.payment_status == PaymentStatus.PARTIAL.value
        assert middle_record.amount_paid == Decimal("30")
        assert ledger.get_record(newest.id).payment_status == PaymentStatus.UNPAID.value

        allocations = service.get_allocations(session.id)
        assert {a.order_id: a.amount for a in allocations} == {
            oldest.id: Decimal("30"),
            middle.id: Decimal("30"),
        }
        assert session.settlement_status == SettlementStatus.PARTIAL.value
        assert session.total_collectible == Decimal("100")
        assert session.orders_to_collect == [str(oldest.id), str(middle.id), str(newest.id)]

    def test_allocation_never_exceeds_collected(self, service, client_row, make_order):
        make_order(client_row, total="30")
        make_order(client_row, total="50", day=1)

        session = service.settle(client_row.id, Decimal("45"))

        allocated = sum(a.amount for a in service.get_allocations(session.id))
        assert allocated == Decimal("45")

    def test_excess_becomes_credit(self, service, ledger, balances, db_session, client_row, make_order):
        first = make_order(client_row, total="50")
        second = make_order(client_row, total="30", day=1)

        session = service.settle(client_row.id, Decimal("100"), payment_method="cash")

        assert ledger.get_record(first.id).payment_status == PaymentStatus.PAID.value
        assert ledger.get_record(second.id).payment_status == PaymentStatus.PAID.value
        assert session.credit_amount == Decimal("20")
        assert session.settlement_status == SettlementStatus.COMPLETED.value

        [credit] = ledger_rows(db_session, client_row.id, TransactionType.CREDIT_APPLIED)
        assert credit.amount == Decimal("20")
        assert credit.related_settlement_id == session.id

        balance = balances.get_balance(client_row.id)
        assert balance.current_balance == Decimal("100")
        assert balance.total_credit == Decimal("20")

    def test_explicit_subset(self, service, ledger, client_row, make_order):
        older = make_order(client_row, total="30")
        newer = make_order(client_row, total="50", day=1)

        service.settle(
            client_row.id, Decimal("50"), options=SettlementOptions(order_ids=[newer.id])
        )

        assert ledger.get_record(older.id).payment_status == PaymentStatus.UNPAID.value
        assert ledger.get_record(newer.id).payment_status == PaymentStatus.PAID.value

    def test_waived_orders_are_skipped(self, service, ledger, client_row, make_order):
        waived = make_order(client_row, total="30")
        kept = make_order(client_row, total="50", day=1)
        ledger.waive_order(waived.id, "Write off")

        session = service.settle(client_row.id, Decimal("50"))

        assert session.orders_to_collect == [str(kept.id)]
        assert ledger.get_record(waived.id).payment_status == PaymentStatus.WAIVED.value
        assert ledger.get_record(kept.id).payment_status == PaymentStatus.PAID.value

    def test_money_without_orders_becomes_credit(self, service, balances, client_row):
        session = service.settle(client_row.id, Decimal("25"))

        assert session.credit_amount == Decimal("25")
        assert session.orders_to_collect == []
        assert balances.get_balance(client_row.id).current_balance == Decimal("25")

    def test_publishes_settlement(self, service, notifier, client_row, make_order):
        make_order(client_row, total="30")
        session = service.settle(client_row.id, Decimal("30"))

        [payload] = notifier.of_type(SETTLEMENT_CREATED)
        assert payload["settlement_id"] == str(session.id)
        assert payload["settlement_status"] == "completed"


class TestReturnsAtSettlement:
    @pytest.fixture
    def order(self, client_row, make_order):
        return make_order(
            client_row,
            items=[
                OrderItemCreate(product_name="Baguette", quantity=4, unit_price=Decimal("15")),
                OrderItemCreate(product_name="Cake", quantity=1, unit_price=Decimal("40")),
            ],
        )

    def record_return(self, db_session, order, quantity=2):
        return ReturnsService(db_session).record_return(
            order.id,
            OrderReturnCreate(
                return_type="unsold_return",
                items=[ReturnLineItemCreate(product_name="Baguette", quantity_returned=quantity)],
            ),
        )

    def test_return_credit_reduces_collectible(self, service, ledger, db_session, order, client_row):
        order_return = self.record_return(db_session, order)

        session = service.settle(client_row.id, Decimal("70"))

        record = ledger.get_record(order.id)
        assert record.order_total == Decimal("70")
        assert record.returns_credit == Decimal("30")
        assert record.payment_status == PaymentStatus.PAID.value
        assert session.total_collectible == Decimal("70")
        assert session.settlement_status == SettlementStatus.COMPLETED.value

        kinds = {a.allocation_type: a.amount for a in service.get_allocations(session.id)}
        assert kinds == {
            AllocationType.RETURN_CREDIT.value: Decimal("30"),
            AllocationType.PAYMENT.value: Decimal("70"),
        }
        db_session.refresh(order_return)
        assert order_return.credit_applied_at is not None
        assert ReturnsService(db_session).pending_credit(order.id) == Decimal("0")

        allocations = SettlementAllocationRepository(db_session)
        assert allocations.get_total_allocated(order.id, AllocationType.PAYMENT) == Decimal("70")
        assert allocations.get_total_allocated(order.id, AllocationType.DEBT) == Decimal("0")

    def test_return_credit_releases_deferred_debt(
        self, service, balances, db_session, order, client_row
    ):
        service.settle(client_row.id, Decimal("0"), options=defer())
        assert balances.get_balance(client_row.id).current_balance == Decimal("-100")

        self.record_return(db_session, order)
        service.settle(client_row.id, Decimal("70"))

        [release] = ledger_rows(db_session, client_row.id, TransactionType.ADJUSTMENT)
        assert release.amount == Decimal("30")
        assert release.related_order_id == order.id
        assert balances.get_balance(client_row.id).current_balance == Decimal("0")


class TestDeferral:
    def test_defer_creates_debt(self, service, ledger, balances, db_session, client_row, make_order):
        order = make_order(client_row, total="100")

        session = service.settle(client_row.id, Decimal("0"), options=defer())

        assert session.settlement_status == SettlementStatus.NO_PAYMENT.value
        [debt] = ledger_rows(db_session, client_row.id, TransactionType.DEBT_CREATED)
        assert debt.amount == Decimal("-100")
        assert debt.related_order_id == order.id

        record = ledger.get_record(order.id)
        assert record.payment_status == PaymentStatus.UNPAID.value
        assert record.amount_paid == Decimal("0")

        [allocation] = service.get_allocations(session.id)
        assert allocation.allocation_type == AllocationType.DEBT.value
        assert allocation.amount == Decimal("100")

        balance = balances.get_balance(client_row.id)
        assert balance.current_balance == Decimal("-100")
        assert balance.total_debt == Decimal("100")

    def test_deferring_twice_records_debt_once(self, service, db_session, client_row, make_order):
        make_order(client_row, total="100")

        service.settle(client_row.id, Decimal("0"), options=defer())
        service.settle(client_row.id, Decimal("0"), options=defer())

        assert len(ledger_rows(db_session, client_row.id, TransactionType.DEBT_CREATED)) == 1

    def test_partial_payment_then_defer_twice(
        self, service, ledger, balances, db_session, client_row, make_order
    ):
        order = make_order(client_row, total="100")
        service.settle(client_row.id, Decimal("40"))

        service.settle(client_row.id, Decimal("0"), options=defer())
        service.settle(client_row.id, Decimal("0"), options=defer())

        debts = ledger_rows(db_session, client_row.id, TransactionType.DEBT_CREATED)
        assert [d.amount for d in debts] == [Decimal("-60")]
        assert ledger.get_record(order.id).amount_remaining == Decimal("60")

        balance = balances.get_balance(client_row.id)
        assert balance.total_debt == Decimal("60")
        assert balance.current_balance == Decimal("-20")

    def test_partial_payment_defer_then_waive(
        self, service, ledger, balances, db_session, client_row, make_order
    ):
        order = make_order(client_row, total="100")
        service.settle(client_row.id, Decimal("40"))
        service.settle(client_row.id, Decimal("0"), options=defer())

        ledger.waive_order(order.id, "Write off")

        forgiven = ledger_rows(db_session, client_row.id, TransactionType.DEBT_FORGIVEN)
        assert [t.amount for t in forgiven] == [Decimal("60")]
        assert balances.get_balance(client_row.id).current_balance == Decimal("40")

    def test_paying_deferred_order_clears_balance(self, service, balances, client_row, make_order):
        make_order(client_row, total="100")
        service.settle(client_row.id, Decimal("0"), options=defer())

        service.settle(client_row.id, Decimal("100"))

        assert balances.get_balance(client_row.id).current_balance == Decimal("0")

    def test_deferral_with_money_rejected(self, service, db_session, client_row, make_order):
        make_order(client_row, total="100")
        with pytest.raises(InvalidAmount):
            service.settle(
                client_row.id,
                Decimal("10"),
                options=SettlementOptions(payment_type=PaymentType.DEBT_ONLY),
            )
        assert db_session.query(SettlementSession).count() == 0


class TestValidation:
    def test_negative_amount(self, service, db_session, client_row, make_order):
        make_order(client_row, total="100")
        with pytest.raises(NegativeAmount):
            service.settle(client_row.id, Decimal("-1"))
        assert db_session.query(SettlementSession).count() == 0

    def test_explicit_order_not_outstanding(self, service, ledger, client_row, make_order):
        paid = make_order(client_row, total="30")
        ledger.apply_payment(paid.id, Decimal("30"))

        with pytest.raises(NoEligibleOrders):
            service.settle(client_row.id, Decimal("30"), options=SettlementOptions(order_ids=[paid.id]))

    def test_explicit_order_of_other_client(self, service, make_client, make_order, client_row):
        other = make_client("Harbour Cafe")
        foreign = make_order(other, total="30")
        make_order(client_row, total="30")

        with pytest.raises(NoEligibleOrders):
            service.settle(
                client_row.id, Decimal("30"), options=SettlementOptions(order_ids=[foreign.id])
            )

    def test_empty_selection(self, service, client_row, make_order):
        make_order(client_row, total="30")
        with pytest.raises(NoEligibleOrders):
            service.settle(client_row.id, Decimal("30"), options=SettlementOptions(order_ids=[]))

    def test_nothing_to_settle(self, service, client_row):
        with pytest.raises(NoEligibleOrders):
            service.settle(client_row.id, Decimal("0"))

    def test_unknown_client(self, service):
        with pytest.raises(NotFound):
            service.settle(uuid.uuid4(), Decimal("10"))


class TestIdempotency:
    def test_retry_returns_same_session(self, service, db_session, client_row, make_order):
        make_order(client_row, total="100")

        first = service.settle(client_row.id, Decimal("40"), idempotency_key="route-12-stop-3")
        second = service.settle(client_row.id, Decimal("40"), idempotency_key="route-12-stop-3")

        assert second.id == first.id
        assert db_session.query(SettlementSession).count() == 1
        assert len(ledger_rows(db_session, client_row.id, TransactionType.PAYMENT_RECEIVED)) == 1


class TestSettleDelivery:
    def test_settles_and_moves_to_settlement(self, service, notifier, db_session, client_row, make_order):
        order = deliver(db_session, make_order(client_row, total="80"))

        session = service.settle_delivery(order.id, Decimal("80"), "cash", actor_id="driver-7")

        db_session.refresh(order)
        assert order.stage == WorkflowStage.SETTLEMENT.value
        assert session.origin_order_id == order.id
        assert session.settlement_type == SettlementType.ORDER_DELIVERY.value
        assert session.driver_id == "driver-7"
        assert session.recorded_by == "driver-7"
        assert session.settlement_status == SettlementStatus.COMPLETED.value

        [event] = [e for e in notifier.of_type(ORDER_STAGE_CHANGED) if e["stage"] == "settlement"]
        assert event["order_id"] == str(order.id)
        assert notifier.of_type(SETTLEMENT_CREATED)

    def test_order_must_be_delivered(self, service, db_session, client_row, make_order):
        order = make_order(client_row, total="80")

        with pytest.raises(InvalidTransition):
            service.settle_delivery(order.id, Decimal("80"), "cash", actor_id="driver-7")

        db_session.refresh(order)
        assert order.stage == WorkflowStage.ORDER_PLACED.value
        assert db_session.query(SettlementSession).count() == 0

    def test_missing_order(self, service):
        with pytest.raises(NotFound):
            service.settle_delivery(uuid.uuid4(), Decimal("10"), "cash", actor_id="driver-7")


class TestStatusCorrection:
    def test_correct_status(self, service, client_row, make_order):
        make_order(client_row, total="100")
        session = service.settle(client_row.id, Decimal("40"))

        corrected = service.correct_settlement_status(
            session.id, SettlementStatus.FAILED, note="Cash went missing"
        )

        assert corrected.settlement_status == SettlementStatus.FAILED.value
        assert corrected.amount_collected == Decimal("40")
        assert "Cash went missing" in corrected.notes

    def test_missing_session(self, service):
        with pytest.raises(NotFound):
            service.correct_settlement_status(uuid.uuid4(), SettlementStatus.FAILED)


class TestCollectionPlan:
    def test_without_return_policy(self, service, client_row, make_order):
        order = make_order(client_row, total="45")

        plan = service.collection_plan(order.id)

        assert plan.should_collect is True
        assert [r.order_id for r in plan.orders_to_collect] == [order.id]
        assert plan.total_amount == Decimal("45")

    def test_with_return_policy(self, service, make_client, make_order):
        client = make_client("Harbour Cafe", return_policy_enabled=True)
        previous = make_order(client, total="30")
        current = make_order(client, total="50", day=1)

        plan = service.collection_plan(current.id)

        assert plan.should_collect is True
        assert [r.order_id for r in plan.orders_to_collect] == [previous.id]
        assert plan.total_amount == Decimal("30")

    def test_return_policy_first_order(self, service, make_client, make_order):
        client = make_client("Harbour Cafe", return_policy_enabled=True)
        first = make_order(client, total="50")

        plan = service.collection_plan(first.id)

        assert plan.should_collect is False
        assert plan.total_amount == Decimal("0")
