"""Client balance repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.concurrency import lock_for_update
from orderflow.models.client_balance import ClientBalance


class ClientBalanceRepository:
    """Repository for ClientBalance model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_client_id(self, client_id: UUID) -> ClientBalance | None:
        return self.db.query(ClientBalance).filter(ClientBalance.client_id == client_id).first()

    def get_or_create(self, client_id: UUID) -> ClientBalance:
        """Get the balance row of a client, creating a zero balance if missing."""
        balance = lock_for_update(
            self.db.query(ClientBalance).filter(ClientBalance.client_id == client_id)
        ).first()
        if balance is None:
            balance = ClientBalance(
                client_id=client_id,
                current_balance=Decimal("0"),
                total_debt=Decimal("0"),
                total_credit=Decimal("0"),
            )
            self.db.add(balance)
            self.db.flush()
        return balance
