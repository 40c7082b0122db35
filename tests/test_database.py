"""Tests for transaction boundaries and optimistic locking."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from orderflow.core.database import unit_of_work
from orderflow.core.errors import InvalidTransition, StorageConflict
from orderflow.models.idempotency_record import IdempotencyRecord
from orderflow.models.order import WorkflowStage
from orderflow.models.workflow_event import WorkflowEvent
from orderflow.repositories.idempotency_repository import IdempotencyRepository
from orderflow.repositories.order_repository import OrderRepository
from orderflow.services.settlement_service import SettlementService
from orderflow.services.stage_machine import StageMachine


class TestUnitOfWork:
    def test_commits_on_success(self, db_session, client_row):
        with unit_of_work(db_session):
            client_row.name = "Renamed Bakery"

        db_session.expire_all()
        assert db_session.execute(text("SELECT name FROM clients")).scalar() == "Renamed Bakery"

    def test_domain_errors_roll_back_and_propagate(self, db_session, client_row):
        with pytest.raises(InvalidTransition):
            with unit_of_work(db_session):
                client_row.name = "Never Saved"
                raise InvalidTransition("nope")

        assert db_session.execute(text("SELECT name FROM clients")).scalar() == "Corner Bakery"

    def test_stale_data_becomes_storage_conflict(self, db_session):
        with pytest.raises(StorageConflict) as exc_info:
            with unit_of_work(db_session):
                raise StaleDataError("row changed underneath us")
        assert exc_info.value.code == "storage_conflict"


class TestConcurrentTransitions:
    def test_losing_transition_conflicts(self, db_session, client_row, make_order):
        order = make_order(client_row, total="10")
        machine = StageMachine(db_session)

        with pytest.raises(StorageConflict):
            with unit_of_work(db_session):
                locked = OrderRepository(db_session).get_for_update(order.id)
                # Another writer commits a transition first
                db_session.execute(
                    text("UPDATE orders SET version = version + 1 WHERE id = :id"),
                    {"id": str(order.id)},
                )
                machine.apply_transition(locked, WorkflowStage.PRODUCTION_QUEUE, "staff-2", "staff")

        db_session.refresh(order)
        assert order.stage == WorkflowStage.ORDER_PLACED.value
        assert db_session.query(WorkflowEvent).count() == 0

    def test_retry_after_conflict_succeeds(self, db_session, client_row, make_order):
        order = make_order(client_row, total="10")
        machine = StageMachine(db_session)

        with pytest.raises(StorageConflict):
            with unit_of_work(db_session):
                locked = OrderRepository(db_session).get_for_update(order.id)
                db_session.execute(
                    text("UPDATE orders SET version = version + 1 WHERE id = :id"),
                    {"id": str(order.id)},
                )
                machine.apply_transition(locked, WorkflowStage.PRODUCTION_QUEUE, "staff-2", "staff")

        moved = machine.transition(order.id, WorkflowStage.PRODUCTION_QUEUE, "staff-2", "staff")
        assert moved.stage == WorkflowStage.PRODUCTION_QUEUE.value


def test_settlements_bump_client_version(db_session, client_row, make_order):
    make_order(client_row, total="10")
    before = client_row.version

    SettlementService(db_session).settle(client_row.id, Decimal("10"))

    db_session.refresh(client_row)
    assert client_row.version > before


class TestIdempotencyRecords:
    def test_delete_expired(self, db_session, client_row):
        repo = IdempotencyRepository(db_session)
        stale = repo.create(idempotency_key="old", operation="settle", resource_id=client_row.id)
        stale.created_at = datetime.now(UTC) - timedelta(hours=48)
        repo.create(idempotency_key="fresh", operation="settle", resource_id=client_row.id)
        db_session.commit()

        assert repo.delete_expired() == 1
        db_session.commit()

        assert [r.idempotency_key for r in db_session.query(IdempotencyRecord).all()] == ["fresh"]
        assert repo.get_by_key("old") is None
