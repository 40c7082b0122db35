"""Order repository for data access."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.concurrency import lock_for_update
from orderflow.models.order import Order, WorkflowStage


class OrderRepository:
    """Repository for Order model."""

    def __init__(self, db: Session):
        self.db = db

    def _generate_order_number(self) -> str:
        """Generate a unique order number."""
        today = datetime.now().strftime("%Y%m%d")
        prefix = f"ORD-{today}-"

        result = (
            self.db.query(Order.order_number)
            .filter(Order.order_number.like(f"{prefix}%"))
            .order_by(Order.order_number.desc())
            .first()
        )

        if result:
            # Extract number from ORD-YYYYMMDD-XXXX format
            try:
                new_num = int(result[0].split("-")[-1]) + 1
            except (ValueError, IndexError):
                new_num = 1
        else:
            new_num = 1

        return f"{prefix}{new_num:04d}"

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        client_id: UUID | None = None,
        stage: WorkflowStage | None = None,
    ) -> list[Order]:
        """Get all orders with optional filters, newest first."""
        query = self.db.query(Order)

        if client_id:
            query = query.filter(Order.client_id == client_id)
        if stage:
            query = query.filter(Order.stage == stage.value)

        return query.order_by(Order.order_date.desc()).offset(skip).limit(limit).all()

    def count(self, client_id: UUID | None = None, stage: WorkflowStage | None = None) -> int:
        query = self.db.query(Order)
        if client_id:
            query = query.filter(Order.client_id == client_id)
        if stage:
            query = query.filter(Order.stage == stage.value)
        return query.count()

    def get_by_id(self, order_id: UUID) -> Order | None:
        """Get an order by ID."""
        return self.db.query(Order).filter(Order.id == order_id).first()

    def get_for_update(self, order_id: UUID) -> Order | None:
        """Get an order by ID, locking the row until the transaction ends."""
        return lock_for_update(self.db.query(Order).filter(Order.id == order_id)).first()

    def get_latest_order_date(self, client_id: UUID) -> datetime | None:
        """Get the most recent order date for a client."""
        order = (
            self.db.query(Order)
            .filter(Order.client_id == client_id)
            .order_by(Order.order_date.desc())
            .first()
        )
        return order.order_date if order else None  # type: ignore[return-value]

    def create(
        self,
        client_id: UUID,
        total: Decimal,
        order_date: datetime | None = None,
        production_notes: str | None = None,
    ) -> Order:
        """Create a new order at the first workflow stage."""
        order = Order(
            order_number=self._generate_order_number(),
            client_id=client_id,
            total=total,
            stage=WorkflowStage.ORDER_PLACED.value,
            production_notes=production_notes,
        )
        if order_date is not None:
            order.order_date = order_date  # type: ignore[assignment]
        self.db.add(order)
        self.db.flush()
        return order
