"""Order payment record repository for data access."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.concurrency import lock_for_update
from orderflow.models.order import Order
from orderflow.models.order_payment_record import OrderPaymentRecord, PaymentStatus

OUTSTANDING_STATUSES = (PaymentStatus.UNPAID.value, PaymentStatus.PARTIAL.value)


class OrderPaymentRecordRepository:
    """Repository for OrderPaymentRecord model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        order_id: UUID,
        client_id: UUID,
        order_total: Decimal,
        payment_status: PaymentStatus,
        due_date: datetime | None = None,
        notes: str | None = None,
    ) -> OrderPaymentRecord:
        """Create the payment record of a freshly placed order."""
        record = OrderPaymentRecord(
            order_id=order_id,
            client_id=client_id,
            order_total=order_total,
            amount_paid=Decimal("0"),
            returns_credit=Decimal("0"),
            payment_status=payment_status.value,
            due_date=due_date,
            notes=notes,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get_by_order_id(self, order_id: UUID) -> OrderPaymentRecord | None:
        """Get the payment record of an order."""
        return (
            self.db.query(OrderPaymentRecord)
            .filter(OrderPaymentRecord.order_id == order_id)
            .first()
        )

    def get_by_order_id_for_update(self, order_id: UUID) -> OrderPaymentRecord | None:
        """Get the payment record of an order, locking the row."""
        return lock_for_update(
            self.db.query(OrderPaymentRecord).filter(OrderPaymentRecord.order_id == order_id)
        ).first()

    def get_outstanding_by_client(
        self,
        client_id: UUID,
        exclude_order_id: UUID | None = None,
        for_update: bool = False,
    ) -> list[OrderPaymentRecord]:
        """Get unpaid and partially paid records for a client, oldest order first.

        Ties on order date fall back to the order's creation time so the
        allocation order is stable.
        """
        query = (
            self.db.query(OrderPaymentRecord)
            .join(Order, Order.id == OrderPaymentRecord.order_id)
            .filter(
                OrderPaymentRecord.client_id == client_id,
                OrderPaymentRecord.payment_status.in_(OUTSTANDING_STATUSES),
            )
        )
        if exclude_order_id is not None:
            query = query.filter(OrderPaymentRecord.order_id != exclude_order_id)
        query = query.order_by(Order.order_date.asc(), Order.created_at.asc())
        if for_update:
            query = lock_for_update(query)
        return query.all()
