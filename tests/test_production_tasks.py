"""Tests for production tasks driven by stage transitions."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from orderflow.models.order import WorkflowStage
from orderflow.models.production_task import TaskPriority, TaskStatus
from orderflow.schemas.order import OrderItemCreate
from orderflow.services.production_task_service import (
    MINUTES_PER_UNIT,
    ProductionTaskService,
    priority_for_quantity,
)
from orderflow.services.stage_machine import StageMachine


@pytest.mark.parametrize(
    ("quantity", "expected"),
    [
        (1, TaskPriority.LOW),
        (4, TaskPriority.LOW),
        (5, TaskPriority.MEDIUM),
        (9, TaskPriority.MEDIUM),
        (10, TaskPriority.HIGH),
        (19, TaskPriority.HIGH),
        (20, TaskPriority.URGENT),
        (250, TaskPriority.URGENT),
    ],
)
def test_priority_for_quantity(quantity, expected):
    assert priority_for_quantity(quantity) == expected


class TestTasksFollowStages:
    @pytest.fixture
    def order(self, client_row, make_order):
        return make_order(
            client_row,
            items=[
                OrderItemCreate(product_name="Sourdough", quantity=12, unit_price=Decimal("4")),
                OrderItemCreate(product_name="Rye", quantity=2, unit_price=Decimal("5")),
            ],
        )

    @pytest.fixture
    def machine(self, db_session):
        return StageMachine(db_session)

    def move(self, machine, order, *stages):
        for stage in stages:
            machine.transition(order.id, stage, "baker-1", "production")

    def test_no_tasks_before_production(self, machine, db_session, order):
        self.move(machine, order, WorkflowStage.PRODUCTION_QUEUE)
        assert ProductionTaskService(db_session).get_tasks(order.id) == []

    def test_tasks_created_on_entering_production(self, machine, db_session, order):
        self.move(machine, order, WorkflowStage.PRODUCTION_QUEUE, WorkflowStage.IN_PRODUCTION)

        tasks = {t.product_name: t for t in ProductionTaskService(db_session).get_tasks(order.id)}

        assert set(tasks) == {"Sourdough", "Rye"}
        assert tasks["Sourdough"].priority == TaskPriority.HIGH.value
        assert tasks["Sourdough"].estimated_minutes == 12 * MINUTES_PER_UNIT
        assert tasks["Rye"].priority == TaskPriority.LOW.value
        assert all(t.status == TaskStatus.PENDING.value for t in tasks.values())

    def test_reentering_production_creates_no_duplicates(self, machine, db_session, order):
        self.move(
            machine,
            order,
            WorkflowStage.PRODUCTION_QUEUE,
            WorkflowStage.IN_PRODUCTION,
            WorkflowStage.PRODUCTION_QUEUE,
            WorkflowStage.IN_PRODUCTION,
        )
        assert len(ProductionTaskService(db_session).get_tasks(order.id)) == 2

    def test_tasks_completed_when_ready_for_delivery(self, machine, db_session, order):
        self.move(
            machine,
            order,
            WorkflowStage.PRODUCTION_QUEUE,
            WorkflowStage.IN_PRODUCTION,
            WorkflowStage.QUALITY_CHECK,
            WorkflowStage.READY_FOR_DELIVERY,
        )

        tasks = ProductionTaskService(db_session).get_tasks(order.id)
        assert len(tasks) == 2
        assert all(t.status == TaskStatus.COMPLETED.value for t in tasks)
        assert all(t.completed_at is not None for t in tasks)

    def test_ready_for_delivery_backfills_missing_tasks(self, db_session, order):
        offline = StageMachine(db_session, task_service=MagicMock())
        self.move(offline, order, WorkflowStage.PRODUCTION_QUEUE, WorkflowStage.IN_PRODUCTION)
        assert ProductionTaskService(db_session).get_tasks(order.id) == []

        self.move(
            StageMachine(db_session),
            order,
            WorkflowStage.QUALITY_CHECK,
            WorkflowStage.READY_FOR_DELIVERY,
        )

        tasks = ProductionTaskService(db_session).get_tasks(order.id)
        assert len(tasks) == 2
        assert all(t.status == TaskStatus.COMPLETED.value for t in tasks)
