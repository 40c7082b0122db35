"""Production task repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.models.production_task import ProductionTask, TaskPriority, TaskStatus
from orderflow.models.shared import utc_now


class ProductionTaskRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        order_id: UUID,
        product_name: str,
        quantity: int,
        priority: TaskPriority,
        estimated_minutes: int,
    ) -> ProductionTask:
        task = ProductionTask(
            order_id=order_id,
            product_name=product_name,
            quantity=quantity,
            priority=priority.value,
            estimated_minutes=estimated_minutes,
            status=TaskStatus.PENDING.value,
        )
        self.db.add(task)
        self.db.flush()
        return task

    def get_by_order_id(self, order_id: UUID) -> list[ProductionTask]:
        return (
            self.db.query(ProductionTask)
            .filter(ProductionTask.order_id == order_id)
            .order_by(ProductionTask.created_at.asc())
            .all()
        )

    def get_open_by_order_id(self, order_id: UUID) -> list[ProductionTask]:
        return (
            self.db.query(ProductionTask)
            .filter(
                ProductionTask.order_id == order_id,
                ProductionTask.status != TaskStatus.COMPLETED.value,
            )
            .all()
        )

    def complete(self, task: ProductionTask) -> ProductionTask:
        task.status = TaskStatus.COMPLETED.value  # type: ignore[assignment]
        task.completed_at = utc_now()  # type: ignore[assignment]
        self.db.flush()
        return task
