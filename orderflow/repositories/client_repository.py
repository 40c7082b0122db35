"""Client repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.concurrency import lock_for_update
from orderflow.models.client import Client
from orderflow.models.shared import utc_now
from orderflow.schemas.client import ClientCreate, ClientUpdate


class ClientRepository:
    """Repository for Client model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self, skip: int = 0, limit: int = 100) -> list[Client]:
        """Get all clients with pagination."""
        return self.db.query(Client).order_by(Client.created_at.asc()).offset(skip).limit(limit).all()

    def count(self) -> int:
        return self.db.query(Client).count()

    def get_by_id(self, client_id: UUID) -> Client | None:
        """Get a client by ID."""
        return self.db.query(Client).filter(Client.id == client_id).first()

    def get_for_update(self, client_id: UUID) -> Client | None:
        """Get a client by ID, locking the row until the transaction ends."""
        return lock_for_update(self.db.query(Client).filter(Client.id == client_id)).first()

    def create(self, data: ClientCreate) -> Client:
        """Create a new client."""
        client = Client(
            name=data.name,
            business_name=data.business_name,
            return_policy_enabled=data.return_policy_enabled,
            payment_delay_orders=data.payment_delay_orders,
            max_debt_limit=data.max_debt_limit,
        )
        self.db.add(client)
        self.db.flush()
        return client

    def update(self, client: Client, data: ClientUpdate) -> Client:
        """Update a client's profile and return policy."""
        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(client, key, value)
        self.db.flush()
        return client

    def touch_settled(self, client: Client) -> Client:
        """Bump the client's version so concurrent allocations conflict."""
        client.last_settled_at = utc_now()  # type: ignore[assignment]
        self.db.flush()
        return client
