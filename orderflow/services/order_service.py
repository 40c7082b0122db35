"""Order placement and delivery adjustments."""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.database import unit_of_work
from orderflow.core.errors import InvalidAmount, InvalidTransition, NotFound, OverReturn
from orderflow.models.order import Order, OrderItem, WorkflowStage
from orderflow.repositories.client_repository import ClientRepository
from orderflow.repositories.order_item_repository import OrderItemRepository
from orderflow.repositories.order_payment_record_repository import OrderPaymentRecordRepository
from orderflow.repositories.order_repository import OrderRepository
from orderflow.repositories.order_return_repository import OrderReturnRepository
from orderflow.schemas.order import DeliveredItemsUpdate, OrderCreate
from orderflow.services.client_balance_service import ClientBalanceService
from orderflow.services.payment_ledger import PaymentLedger, compute_payment_status, refresh_status

logger = logging.getLogger(__name__)

ADJUSTABLE_STAGES = {WorkflowStage.OUT_FOR_DELIVERY.value, WorkflowStage.DELIVERED.value}


def line_total(items: list[OrderItem]) -> Decimal:
    """Value of what was actually delivered."""
    return sum(
        (Decimal(int(i.delivered_quantity)) * Decimal(str(i.unit_price)) for i in items),  # type: ignore[arg-type]
        Decimal("0"),
    )


class OrderService:
    """Service for order placement and queries."""

    def __init__(self, db: Session):
        self.db = db
        self.order_repo = OrderRepository(db)
        self.item_repo = OrderItemRepository(db)
        self.record_repo = OrderPaymentRecordRepository(db)
        self.client_repo = ClientRepository(db)

    def place_order(self, data: OrderCreate) -> Order:
        """Create an order at ``order_placed`` together with its payment record."""
        if not self.client_repo.get_by_id(data.client_id):
            raise NotFound(f"Client {data.client_id} not found")

        total = sum(
            (Decimal(item.quantity) * item.unit_price for item in data.items), Decimal("0")
        )

        with unit_of_work(self.db):
            order = self.order_repo.create(
                client_id=data.client_id,
                total=total,
                order_date=data.order_date,
                production_notes=data.notes,
            )
            for item in data.items:
                self.item_repo.create(order.id, item)  # type: ignore[arg-type]
            self.record_repo.create(
                order_id=order.id,  # type: ignore[arg-type]
                client_id=data.client_id,
                order_total=total,
                payment_status=compute_payment_status(total, Decimal("0")),
                due_date=data.due_date,
            )
            ClientBalanceService(self.db).touch_last_order_date(
                data.client_id, order.order_date  # type: ignore[arg-type]
            )

        logger.info("Placed order %s for client %s, total %s", order.order_number, data.client_id, total)
        return order

    def adjust_delivered_items(self, order_id: UUID, data: DeliveredItemsUpdate) -> Order:
        """Record what was actually handed over and re-price the order.

        Allowed while the order is out for delivery or delivered. Return credit
        already applied stays deducted from the payable total.
        """
        with unit_of_work(self.db):
            order = self.order_repo.get_for_update(order_id)
            if not order:
                raise NotFound(f"Order {order_id} not found")
            if order.stage not in ADJUSTABLE_STAGES:
                raise InvalidTransition(
                    f"Delivered items can only be adjusted out for delivery or delivered, "
                    f"order {order.order_number} is {order.stage}"
                )

            items = {item.id: item for item in self.item_repo.get_by_order_id(order_id)}
            for change in data.items:
                item = items.get(change.item_id)
                if item is None:
                    raise InvalidAmount(f"Item {change.item_id} is not part of order {order.order_number}")
                if change.delivered_quantity > item.quantity:
                    raise InvalidAmount(
                        f"Cannot deliver {change.delivered_quantity} x {item.product_name}, "
                        f"only {item.quantity} ordered"
                    )

            proposed = {item_id: int(item.delivered_quantity) for item_id, item in items.items()}  # type: ignore[arg-type]
            proposed.update({change.item_id: change.delivered_quantity for change in data.items})
            delivered: dict[str, int] = {}
            for item_id, quantity in proposed.items():
                name = str(items[item_id].product_name)
                delivered[name] = delivered.get(name, 0) + quantity
            for name, returned in OrderReturnRepository(self.db).get_returned_quantities(order_id).items():
                if delivered.get(name, 0) < returned:
                    raise OverReturn(
                        f"Cannot reduce {name} to {delivered.get(name, 0)} delivered, "
                        f"{returned} already returned on order {order.order_number}"
                    )

            for change in data.items:
                items[change.item_id].delivered_quantity = change.delivered_quantity  # type: ignore[assignment]

            new_total = line_total(list(items.values()))
            order.total = new_total  # type: ignore[assignment]
            if data.reason:
                note = f"Delivered items adjusted: {data.reason}"
                order.delivery_notes = f"{order.delivery_notes}\n{note}" if order.delivery_notes else note  # type: ignore[assignment]

            record = self.record_repo.get_by_order_id_for_update(order_id)
            if record is not None:
                returns_credit = Decimal(str(record.returns_credit))
                record.order_total = max(Decimal("0"), new_total - returns_credit)  # type: ignore[assignment]
                refresh_status(record)
                PaymentLedger(self.db).release_excess_debt(
                    record, description="Delivered quantity reduced"
                )
            self.db.flush()

        logger.info("Adjusted delivered items of order %s, new total %s", order.order_number, new_total)
        return order

    def get_order(self, order_id: UUID) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return order

    def get_items(self, order_id: UUID) -> list[OrderItem]:
        return self.item_repo.get_by_order_id(order_id)

    def list_orders(
        self,
        skip: int = 0,
        limit: int = 100,
        client_id: UUID | None = None,
        stage: WorkflowStage | None = None,
    ) -> list[Order]:
        return self.order_repo.get_all(skip=skip, limit=limit, client_id=client_id, stage=stage)

    def count_orders(self, client_id: UUID | None = None, stage: WorkflowStage | None = None) -> int:
        return self.order_repo.count(client_id=client_id, stage=stage)
