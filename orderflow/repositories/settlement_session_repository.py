"""Settlement session repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.models.settlement_session import SettlementSession, SettlementStatus


class SettlementSessionRepository:
    """Repository for SettlementSession model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        client_id: UUID,
        settlement_type: str,
        payment_type: str,
        orders_to_collect: list[str],
        total_collectible: Decimal,
        amount_collected: Decimal,
        payment_method: str,
        payment_reference: str | None = None,
        origin_order_id: UUID | None = None,
        driver_id: str | None = None,
        notes: str | None = None,
        recorded_by: str | None = None,
    ) -> SettlementSession:
        """Create a settlement session in ``pending`` state."""
        session = SettlementSession(
            client_id=client_id,
            origin_order_id=origin_order_id,
            driver_id=driver_id,
            settlement_type=settlement_type,
            payment_type=payment_type,
            orders_to_collect=orders_to_collect,
            total_collectible=total_collectible,
            amount_collected=amount_collected,
            credit_amount=Decimal("0"),
            payment_method=payment_method,
            payment_reference=payment_reference,
            settlement_status=SettlementStatus.PENDING.value,
            notes=notes,
            recorded_by=recorded_by,
        )
        self.db.add(session)
        self.db.flush()
        return session

    def get_by_id(self, settlement_id: UUID) -> SettlementSession | None:
        return self.db.query(SettlementSession).filter(SettlementSession.id == settlement_id).first()

    def get_by_client_id(
        self, client_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[SettlementSession]:
        """Get a client's settlement history, newest first."""
        return (
            self.db.query(SettlementSession)
            .filter(SettlementSession.client_id == client_id)
            .order_by(SettlementSession.settlement_date.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_by_client_id(self, client_id: UUID) -> int:
        return self.db.query(SettlementSession).filter(SettlementSession.client_id == client_id).count()
