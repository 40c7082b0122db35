"""Order return repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from orderflow.models.order_return import OrderReturn, ReturnLineItem
from orderflow.models.shared import utc_now


class OrderReturnRepository:
    """Repository for OrderReturn and its line items."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        order_id: UUID,
        client_id: UUID,
        return_type: str,
        total_credit: Decimal,
        processed_by: str | None = None,
        notes: str | None = None,
    ) -> OrderReturn:
        order_return = OrderReturn(
            order_id=order_id,
            client_id=client_id,
            return_type=return_type,
            total_credit=total_credit,
            processed_by=processed_by,
            notes=notes,
        )
        self.db.add(order_return)
        self.db.flush()
        return order_return

    def add_line_item(
        self,
        return_id: UUID,
        product_name: str,
        quantity_returned: int,
        unit_price: Decimal,
        credit_amount: Decimal,
        condition: str,
        restockable: bool,
        notes: str | None = None,
    ) -> ReturnLineItem:
        item = ReturnLineItem(
            return_id=return_id,
            product_name=product_name,
            quantity_returned=quantity_returned,
            unit_price=unit_price,
            credit_amount=credit_amount,
            condition=condition,
            restockable=restockable,
            notes=notes,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def get_by_id(self, return_id: UUID) -> OrderReturn | None:
        return self.db.query(OrderReturn).filter(OrderReturn.id == return_id).first()

    def get_by_order_id(self, order_id: UUID) -> list[OrderReturn]:
        return (
            self.db.query(OrderReturn)
            .filter(OrderReturn.order_id == order_id)
            .order_by(OrderReturn.created_at.asc())
            .all()
        )

    def get_pending_by_order_id(self, order_id: UUID) -> list[OrderReturn]:
        """Returns whose credit has not yet been applied to the order."""
        return (
            self.db.query(OrderReturn)
            .filter(OrderReturn.order_id == order_id, OrderReturn.credit_applied_at.is_(None))
            .order_by(OrderReturn.created_at.asc())
            .all()
        )

    def get_line_items(self, return_id: UUID) -> list[ReturnLineItem]:
        return (
            self.db.query(ReturnLineItem)
            .filter(ReturnLineItem.return_id == return_id)
            .order_by(ReturnLineItem.created_at.asc())
            .all()
        )

    def get_returned_quantities(self, order_id: UUID) -> dict[str, int]:
        """Quantity already returned per product for an order."""
        rows = (
            self.db.query(ReturnLineItem.product_name, sa_func.sum(ReturnLineItem.quantity_returned))
            .join(OrderReturn, OrderReturn.id == ReturnLineItem.return_id)
            .filter(OrderReturn.order_id == order_id)
            .group_by(ReturnLineItem.product_name)
            .all()
        )
        return {name: int(qty or 0) for name, qty in rows}

    def mark_applied(self, order_return: OrderReturn) -> OrderReturn:
        order_return.credit_applied_at = utc_now()  # type: ignore[assignment]
        self.db.flush()
        return order_return
