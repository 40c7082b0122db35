"""Returns and credit calculation.

A return reduces what is owed on the order it references. Recording a return
only stores it; the credit is deducted from the order's payment record by the
next settlement that includes the order.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.database import unit_of_work
from orderflow.core.errors import InvalidAmount, NotFound, OverReturn
from orderflow.models.order_payment_record import OrderPaymentRecord
from orderflow.models.order_return import ItemCondition, OrderReturn, ReturnLineItem
from orderflow.models.settlement_allocation import AllocationType
from orderflow.repositories.order_item_repository import OrderItemRepository
from orderflow.repositories.order_repository import OrderRepository
from orderflow.repositories.order_return_repository import OrderReturnRepository
from orderflow.repositories.settlement_allocation_repository import SettlementAllocationRepository
from orderflow.schemas.order_return import OrderReturnCreate
from orderflow.services.payment_ledger import PaymentLedger, refresh_status

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

NON_RESTOCKABLE_CONDITIONS = {ItemCondition.DAMAGED, ItemCondition.EXPIRED}


@dataclass
class ReturnLine:
    """A priced line to be credited."""

    product_name: str
    quantity_returned: int
    unit_price: Decimal

    @property
    def credit(self) -> Decimal:
        return Decimal(self.quantity_returned) * Decimal(str(self.unit_price))


def compute_credit(lines: Iterable[ReturnLine | ReturnLineItem]) -> Decimal:
    """Total credit of return lines: sum of quantity x unit price."""
    total = ZERO
    for line in lines:
        quantity = int(line.quantity_returned)  # type: ignore[arg-type]
        price = Decimal(str(line.unit_price))
        if quantity < 0 or price < 0:
            raise InvalidAmount("Returned quantity and unit price must not be negative")
        total += quantity * price
    return total


def adjusted_order_total(order_total: Decimal, returns: Iterable[OrderReturn]) -> Decimal:
    """Order total less the credit of every return against it, floored at 0."""
    credit = sum((Decimal(str(r.total_credit)) for r in returns), ZERO)
    return max(ZERO, Decimal(str(order_total)) - credit)


class ReturnsService:
    def __init__(self, db: Session):
        self.db = db
        self.return_repo = OrderReturnRepository(db)
        self.order_repo = OrderRepository(db)
        self.item_repo = OrderItemRepository(db)
        self.allocation_repo = SettlementAllocationRepository(db)

    def record_return(self, order_id: UUID, data: OrderReturnCreate) -> OrderReturn:
        """Record a return of delivered items against an order.

        Raises:
            NotFound: the order does not exist.
            OverReturn: more of a product would be returned than was delivered.
        """
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")

        delivered: dict[str, int] = {}
        prices: dict[str, Decimal] = {}
        for item in self.item_repo.get_by_order_id(order_id):
            name = str(item.product_name)
            delivered[name] = delivered.get(name, 0) + int(item.delivered_quantity)  # type: ignore[arg-type]
            prices.setdefault(name, Decimal(str(item.unit_price)))

        already_returned = self.return_repo.get_returned_quantities(order_id)
        requested: dict[str, int] = {}
        lines: list[ReturnLine] = []
        for line in data.items:
            requested[line.product_name] = requested.get(line.product_name, 0) + line.quantity_returned
            total_returned = already_returned.get(line.product_name, 0) + requested[line.product_name]
            if total_returned > delivered.get(line.product_name, 0):
                raise OverReturn(
                    f"Cannot return {total_returned} x {line.product_name}: "
                    f"only {delivered.get(line.product_name, 0)} delivered on order {order.order_number}"
                )
            unit_price = line.unit_price if line.unit_price is not None else prices[line.product_name]
            lines.append(ReturnLine(line.product_name, line.quantity_returned, unit_price))

        total_credit = compute_credit(lines)

        with unit_of_work(self.db):
            order_return = self.return_repo.create(
                order_id=order_id,
                client_id=order.client_id,  # type: ignore[arg-type]
                return_type=data.return_type.value,
                total_credit=total_credit,
                processed_by=data.processed_by,
                notes=data.notes,
            )
            for line, priced in zip(data.items, lines, strict=True):
                restockable = (
                    line.restockable
                    if line.restockable is not None
                    else line.condition not in NON_RESTOCKABLE_CONDITIONS
                )
                self.return_repo.add_line_item(
                    return_id=order_return.id,  # type: ignore[arg-type]
                    product_name=priced.product_name,
                    quantity_returned=priced.quantity_returned,
                    unit_price=priced.unit_price,
                    credit_amount=priced.credit,
                    condition=line.condition.value,
                    restockable=restockable,
                    notes=line.notes,
                )

        logger.info(
            "Recorded %s return for order %s with credit %s",
            data.return_type.value,
            order.order_number,
            total_credit,
        )
        return order_return

    def pending_credit(self, order_id: UUID) -> Decimal:
        return sum(
            (Decimal(str(r.total_credit)) for r in self.return_repo.get_pending_by_order_id(order_id)),
            ZERO,
        )

    def apply_pending_returns(
        self,
        record: OrderPaymentRecord,
        ledger: PaymentLedger,
        settlement_id: UUID,
        recorded_by: str | None = None,
    ) -> Decimal:
        """Deduct pending return credit from an order's payment record.

        Runs inside the caller's transaction. Marks each return applied,
        writes a ``return_credit`` allocation and releases any ledger debt the
        order no longer owes. Returns the amount the payable total went down by.
        """
        pending = self.return_repo.get_pending_by_order_id(record.order_id)  # type: ignore[arg-type]
        if not pending:
            return ZERO

        credit = sum((Decimal(str(r.total_credit)) for r in pending), ZERO)
        old_total = Decimal(str(record.order_total))
        new_total = max(ZERO, old_total - credit)
        applied = old_total - new_total

        record.order_total = new_total  # type: ignore[assignment]
        record.returns_credit = Decimal(str(record.returns_credit)) + applied  # type: ignore[assignment]
        refresh_status(record)
        for order_return in pending:
            self.return_repo.mark_applied(order_return)

        if applied > 0:
            self.allocation_repo.create(
                settlement_id=settlement_id,
                order_id=record.order_id,  # type: ignore[arg-type]
                allocation_type=AllocationType.RETURN_CREDIT,
                amount=applied,
            )
            ledger.release_excess_debt(
                record,
                description="Return credit applied",
                recorded_by=recorded_by,
                settlement_id=settlement_id,
                return_id=pending[-1].id,  # type: ignore[arg-type]
            )

        logger.info("Applied return credit of %s to order %s", applied, record.order_id)
        return applied

    def get_returns(self, order_id: UUID) -> list[OrderReturn]:
        if not self.order_repo.get_by_id(order_id):
            raise NotFound(f"Order {order_id} not found")
        return self.return_repo.get_by_order_id(order_id)

    def get_line_items(self, return_id: UUID) -> list[ReturnLineItem]:
        return self.return_repo.get_line_items(return_id)

    def adjusted_total(self, order_id: UUID) -> tuple[Decimal, Decimal, Decimal]:
        """Original order total, credit of all its returns, and the adjusted total."""
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        returns = self.return_repo.get_by_order_id(order_id)
        total = Decimal(str(order.total))
        adjusted = adjusted_order_total(total, returns)
        return total, total - adjusted, adjusted
