"""Order item repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.models.order import OrderItem
from orderflow.schemas.order import OrderItemCreate


class OrderItemRepository:
    """Repository for OrderItem model."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, order_id: UUID, data: OrderItemCreate) -> OrderItem:
        """Create an order line; the full quantity is expected to be delivered."""
        item = OrderItem(
            order_id=order_id,
            product_name=data.product_name,
            quantity=data.quantity,
            delivered_quantity=data.quantity,
            unit_price=data.unit_price,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def get_by_order_id(self, order_id: UUID) -> list[OrderItem]:
        """Get all lines of an order in entry order."""
        return (
            self.db.query(OrderItem)
            .filter(OrderItem.order_id == order_id)
            .order_by(OrderItem.created_at.asc())
            .all()
        )
