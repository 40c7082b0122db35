"""Settlement allocation repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from orderflow.models.settlement_allocation import AllocationType, SettlementAllocation


class SettlementAllocationRepository:
    """Repository for SettlementAllocation model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        settlement_id: UUID,
        order_id: UUID,
        allocation_type: AllocationType,
        amount: Decimal,
    ) -> SettlementAllocation:
        """Record one effect of a settlement on an order."""
        allocation = SettlementAllocation(
            settlement_id=settlement_id,
            order_id=order_id,
            allocation_type=allocation_type.value,
            amount=amount,
        )
        self.db.add(allocation)
        self.db.flush()
        return allocation

    def get_by_settlement_id(self, settlement_id: UUID) -> list[SettlementAllocation]:
        """Get all allocations of a settlement in the order they were made."""
        return (
            self.db.query(SettlementAllocation)
            .filter(SettlementAllocation.settlement_id == settlement_id)
            .order_by(SettlementAllocation.created_at.asc())
            .all()
        )

    def get_total_allocated(self, order_id: UUID, allocation_type: AllocationType) -> Decimal:
        """Get the total amount of one allocation type across all settlements of an order."""
        result = (
            self.db.query(sa_func.sum(SettlementAllocation.amount))
            .filter(
                SettlementAllocation.order_id == order_id,
                SettlementAllocation.allocation_type == allocation_type.value,
            )
            .scalar()
        )
        return Decimal(str(result)) if result else Decimal("0")
