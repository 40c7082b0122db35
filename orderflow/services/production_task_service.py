"""Production task collaborator driven by stage transitions."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.database import unit_of_work
from orderflow.models.order import WorkflowStage
from orderflow.models.production_task import ProductionTask, TaskPriority
from orderflow.repositories.order_item_repository import OrderItemRepository
from orderflow.repositories.production_task_repository import ProductionTaskRepository

logger = logging.getLogger(__name__)

# Minutes of production time per unit
MINUTES_PER_UNIT = 30


def priority_for_quantity(quantity: int) -> TaskPriority:
    """Larger batches are scheduled first."""
    if quantity >= 20:
        return TaskPriority.URGENT
    if quantity >= 10:
        return TaskPriority.HIGH
    if quantity >= 5:
        return TaskPriority.MEDIUM
    return TaskPriority.LOW


class ProductionTaskService:
    """Creates and closes production tasks as orders move through production.

    Called after a transition has committed, in its own transaction. Callers
    treat any failure here as a warning, never as a failed transition.
    """

    def __init__(self, db: Session):
        self.db = db
        self.task_repo = ProductionTaskRepository(db)
        self.item_repo = OrderItemRepository(db)

    def on_stage_entered(self, order_id: UUID, stage: WorkflowStage) -> list[ProductionTask]:
        if stage == WorkflowStage.IN_PRODUCTION:
            return self.create_tasks(order_id)
        if stage == WorkflowStage.READY_FOR_DELIVERY:
            # Recreates tasks whose creation failed when production started
            self.create_tasks(order_id)
            return self.complete_tasks(order_id)
        return []

    def create_tasks(self, order_id: UUID) -> list[ProductionTask]:
        """Create one task per order line. Re-entering production creates nothing new."""
        existing = self.task_repo.get_by_order_id(order_id)
        if existing:
            return existing

        with unit_of_work(self.db):
            tasks = [
                self.task_repo.create(
                    order_id=order_id,
                    product_name=item.product_name,  # type: ignore[arg-type]
                    quantity=item.quantity,  # type: ignore[arg-type]
                    priority=priority_for_quantity(item.quantity),  # type: ignore[arg-type]
                    estimated_minutes=MINUTES_PER_UNIT * item.quantity,  # type: ignore[arg-type]
                )
                for item in self.item_repo.get_by_order_id(order_id)
            ]

        logger.info("Created %d production tasks for order %s", len(tasks), order_id)
        return tasks

    def complete_tasks(self, order_id: UUID) -> list[ProductionTask]:
        with unit_of_work(self.db):
            tasks = [self.task_repo.complete(t) for t in self.task_repo.get_open_by_order_id(order_id)]
        if tasks:
            logger.info("Completed %d production tasks for order %s", len(tasks), order_id)
        return tasks

    def get_tasks(self, order_id: UUID) -> list[ProductionTask]:
        return self.task_repo.get_by_order_id(order_id)
